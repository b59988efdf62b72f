"""
Assessment scoring: MBTI, DISC, Holland, MSQ and custom (points-based)
questionnaires.

Answers map a question id (str) to the chosen option's `value` or `text`.
Each option carries a `score` map of dimension -> points; custom and MSQ
assessments may also use a bare number.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional, Sequence

from app.models.assessment import AssessmentQuestion
from feedback_hub_shared.schemas.common import AssessmentType


class ScoringError(ValueError):
    """Raised for assessment types without a calculator."""


MBTI_DIMENSIONS = ("E", "I", "S", "N", "T", "F", "J", "P")
MBTI_PAIRS = (("E", "I"), ("S", "N"), ("T", "F"), ("J", "P"))
DISC_DIMENSIONS = ("D", "I", "S", "C")
HOLLAND_DIMENSIONS = ("R", "I", "A", "S", "E", "C")

# Two leading DISC styles within this many percentage points form a blend
DISC_BLEND_THRESHOLD = 20

# MSQ items are answered on a 1-5 scale; positions are 1-based
MSQ_MAX_ITEM_SCORE = 5
MSQ_INTRINSIC_ITEMS = range(1, 13)
MSQ_EXTRINSIC_ITEMS = range(13, 21)


def _profile(description: str, strengths=(), weaknesses=(), careers=()) -> dict:
    return {
        "description": description,
        "strengths": list(strengths),
        "weaknesses": list(weaknesses),
        "careers": list(careers),
    }


MBTI_PROFILES: dict[str, dict] = {
    "INTJ": _profile(
        "Architect: imaginative, strategic planner who improves systems.",
        ["Strategic thinking", "Independence", "High standards"],
        ["Impatient with inefficiency", "Can seem aloof"],
        ["Engineer", "Scientist", "Systems architect", "Business strategist"],
    ),
    "INTP": _profile(
        "Logician: inventive thinker driven to understand principles.",
        ["Analytical reasoning", "Creative problem solving", "Open mindedness"],
        ["Loses interest in routine", "Can overlook practical details"],
        ["Software developer", "Researcher", "Analyst"],
    ),
    "ENTJ": _profile(
        "Commander: bold, decisive leader who organises people toward goals.",
        ["Leadership", "Decisiveness", "Long-range planning"],
        ["Can be domineering", "Impatient with slower colleagues"],
        ["Executive", "Entrepreneur", "Management consultant"],
    ),
    "ENTP": _profile(
        "Debater: curious thinker who enjoys intellectual challenges.",
        ["Quick thinking", "Inventiveness", "Persuasive communication"],
        ["Dislikes routine work", "May leave tasks unfinished"],
        ["Entrepreneur", "Consultant", "Marketing strategist"],
    ),
    "INFJ": _profile(
        "Advocate: principled idealist who seeks meaning and helps others.",
        ["Insight into people", "Commitment to values", "Creativity"],
        ["Perfectionism", "Prone to burnout"],
        ["Counsellor", "Psychologist", "Writer", "Teacher"],
    ),
    "INFP": _profile(
        "Mediator: loyal idealist who aligns life with personal values.",
        ["Empathy", "Creativity", "Loyalty"],
        ["Takes criticism personally", "Can be impractical"],
        ["Writer", "Designer", "Counsellor", "Translator"],
    ),
    "ENFJ": _profile(
        "Protagonist: charismatic leader who helps others reach their potential.",
        ["Motivating others", "Empathy", "Organisation"],
        ["Overcommits to others", "Avoids conflict"],
        ["Teacher", "Coach", "HR manager"],
    ),
    "ENFP": _profile(
        "Campaigner: enthusiastic, creative connector of people and ideas.",
        ["Enthusiasm", "Communication", "Adaptability"],
        ["Easily distracted", "Struggles with routine"],
        ["Marketer", "Journalist", "Consultant"],
    ),
    "ISTJ": _profile(
        "Logistician: practical, fact-minded and reliable.",
        ["Reliability", "Attention to detail", "Thoroughness"],
        ["Resistant to change", "Can be inflexible"],
        ["Accountant", "Auditor", "Operations manager"],
    ),
    "ISFJ": _profile(
        "Defender: dedicated, warm protector of people and traditions.",
        ["Supportiveness", "Patience", "Practical help"],
        ["Reluctant to say no", "Undervalues own work"],
        ["Nurse", "Office manager", "Customer support lead"],
    ),
    "ESTJ": _profile(
        "Executive: organised administrator of people and processes.",
        ["Organisation", "Dependability", "Clear direction"],
        ["Can be rigid", "Judges quickly"],
        ["Project manager", "Administrator", "Operations lead"],
    ),
    "ESFJ": _profile(
        "Consul: caring, social and eager to help.",
        ["Cooperation", "Warmth", "Loyalty"],
        ["Needs approval", "Sensitive to criticism"],
        ["HR specialist", "Teacher", "Event coordinator"],
    ),
    "ISTP": _profile(
        "Virtuoso: bold, practical experimenter with tools and systems.",
        ["Hands-on problem solving", "Calm in a crisis", "Flexibility"],
        ["Dislikes commitment", "Can seem detached"],
        ["Technician", "Mechanical engineer", "Pilot"],
    ),
    "ISFP": _profile(
        "Adventurer: flexible, charming explorer of new experiences.",
        ["Aesthetic sense", "Kindness", "Adaptability"],
        ["Avoids long-term planning", "Dislikes conflict"],
        ["Designer", "Photographer", "Therapist"],
    ),
    "ESTP": _profile(
        "Entrepreneur: energetic, perceptive and action oriented.",
        ["Quick action", "Practical sense", "Negotiation"],
        ["Impatient", "Takes risks"],
        ["Sales representative", "Entrepreneur", "Paramedic"],
    ),
    "ESFP": _profile(
        "Entertainer: spontaneous, energetic and enthusiastic.",
        ["Energy", "People skills", "Practicality"],
        ["Easily bored", "Avoids planning"],
        ["Event planner", "Sales", "Trainer"],
    ),
}

DISC_PROFILES: dict[str, dict] = {
    "D": _profile(
        "Dominance: direct, decisive and results oriented.",
        ["Decisiveness", "Drive for results", "Accepts challenges"],
        ["Impatience", "Can be blunt"],
        ["Manager", "Entrepreneur", "Sales director"],
    ),
    "I": _profile(
        "Influence: outgoing, optimistic and persuasive.",
        ["Persuasion", "Optimism", "Networking"],
        ["Disorganised", "Overpromises"],
        ["Marketing", "Public relations", "Trainer"],
    ),
    "S": _profile(
        "Steadiness: patient, dependable and team focused.",
        ["Patience", "Loyalty", "Good listener"],
        ["Resists change", "Avoids conflict"],
        ["Customer support", "Counsellor", "Administrator"],
    ),
    "C": _profile(
        "Conscientiousness: precise, analytical and quality driven.",
        ["Accuracy", "Analysis", "High standards"],
        ["Overly critical", "Slow to decide"],
        ["Analyst", "Engineer", "Quality assurance"],
    ),
    "DI": _profile("Dominance-Influence: a driven leader who persuades and inspires."),
    "DC": _profile("Dominance-Conscientiousness: a demanding, exacting problem solver."),
    "IS": _profile("Influence-Steadiness: a warm, supportive team builder."),
    "IC": _profile("Influence-Conscientiousness: an engaging communicator with an eye for detail."),
    "DS": _profile("Dominance-Steadiness: a determined, persistent finisher."),
}

HOLLAND_PROFILES: dict[str, dict] = {
    "R": {
        "description": "Realistic: practical and technical, enjoys working with tools and machines.",
        "strengths": ["Hands-on skill", "Practical problem solving", "Independence"],
        "careers": ["Mechanical engineer", "Electrician", "Civil engineer", "Pilot"],
        "work_environment": ["Workshops or outdoors", "Working with tools and equipment"],
        "skills": ["Technical skills", "Using tools", "Precision"],
    },
    "I": {
        "description": "Investigative: analytical and scientific, enjoys ideas and research.",
        "strengths": ["Analytical thinking", "Research", "Curiosity"],
        "careers": ["Scientist", "Physician", "Software engineer", "Data analyst"],
        "work_environment": ["Laboratories and research settings", "Quiet offices"],
        "skills": ["Data analysis", "Logical reasoning", "Mathematics"],
    },
    "A": {
        "description": "Artistic: creative and expressive, enjoys art, writing and design.",
        "strengths": ["Creativity", "Originality", "Aesthetic sensitivity"],
        "careers": ["Graphic designer", "Writer", "Musician", "Photographer"],
        "work_environment": ["Studios", "Unstructured, flexible settings"],
        "skills": ["Visual expression", "Innovation", "Artistic technique"],
    },
    "S": {
        "description": "Social: helpful and empathetic, enjoys teaching and caring for others.",
        "strengths": ["Communication", "Empathy", "Teamwork"],
        "careers": ["Teacher", "Counsellor", "Nurse", "Social worker"],
        "work_environment": ["Working with people", "Supportive teams"],
        "skills": ["Teaching", "Counselling", "Listening"],
    },
    "E": {
        "description": "Enterprising: persuasive leader, enjoys selling and building ventures.",
        "strengths": ["Leadership", "Persuasion", "Initiative"],
        "careers": ["Sales manager", "Entrepreneur", "Lawyer", "Project manager"],
        "work_environment": ["Competitive, fast-moving settings", "Client facing roles"],
        "skills": ["Negotiation", "Management", "Public speaking"],
    },
    "C": {
        "description": "Conventional: organised and precise, enjoys data and clear procedures.",
        "strengths": ["Organisation", "Accuracy", "Reliability"],
        "careers": ["Accountant", "Financial analyst", "Database administrator", "Office manager"],
        "work_environment": ["Structured offices", "Predictable routines"],
        "skills": ["Record keeping", "Information management", "Attention to detail"],
    },
}

MSQ_LEVELS = (
    (80, "Very high", "Job satisfaction is very high. The job meets almost all of your needs."),
    (65, "High", "Job satisfaction is good, though some aspects could improve."),
    (50, "Moderate", "Job satisfaction is moderate. Some aspects of the job need attention."),
    (35, "Low", "Job satisfaction is low. Several aspects of the job are unsatisfying."),
    (0, "Very low", "Job satisfaction is very low. Substantial changes are likely needed."),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(score: float, total: float) -> int:
    if total == 0:
        return 0
    return _round_half_up(score / total * 100)


def _find_option(question: AssessmentQuestion, answer: Any) -> Optional[Mapping[str, Any]]:
    for option in question.options or []:
        if option.get("value") == answer or option.get("text") == answer:
            return option
    return None


def _answered(
    answers: Mapping[str, Any], questions: Sequence[AssessmentQuestion]
) -> Iterable[tuple[AssessmentQuestion, Mapping[str, Any]]]:
    by_id = {str(q.id): q for q in questions}
    for question_id, answer in answers.items():
        question = by_id.get(str(question_id))
        if question is None:
            continue
        option = _find_option(question, answer)
        if option is not None:
            yield question, option


def _tally(
    answers: Mapping[str, Any],
    questions: Sequence[AssessmentQuestion],
    dimensions: Sequence[str],
) -> dict[str, float]:
    scores = {dim: 0.0 for dim in dimensions}
    for _, option in _answered(answers, questions):
        score_map = option.get("score")
        if not isinstance(score_map, Mapping):
            continue
        for dim, points in score_map.items():
            if dim in scores:
                scores[dim] += float(points)
    return scores


def _option_points(option: Mapping[str, Any]) -> float:
    score = option.get("score")
    if isinstance(score, Mapping):
        return float(sum(score.values()))
    return float(score or 0)


def _msq_points(option: Mapping[str, Any]) -> float:
    score = option.get("score")
    if isinstance(score, Mapping):
        for key in ("value", "msq"):
            if key in score:
                return float(score[key])
        return 0.0
    return float(score or 0)


def _with_profile(result: dict, profiles: Mapping[str, dict], key: str) -> dict:
    profile = profiles.get(key) or _profile(f"Type {key}")
    result.update({field: list(v) if isinstance(v, list) else v for field, v in profile.items()})
    return result


# ---------------------------------------------------------------------------
# Calculators
# ---------------------------------------------------------------------------


def calculate_mbti(
    answers: Mapping[str, Any], questions: Sequence[AssessmentQuestion]
) -> dict:
    scores = _tally(answers, questions, MBTI_DIMENSIONS)
    mbti_type = "".join(a if scores[a] > scores[b] else b for a, b in MBTI_PAIRS)

    percentages: dict[str, int] = {}
    for a, b in MBTI_PAIRS:
        pair_total = scores[a] + scores[b]
        percentages[a] = percentage(scores[a], pair_total)
        percentages[b] = percentage(scores[b], pair_total)

    result = {"type": mbti_type, "scores": scores, "percentages": percentages}
    return _with_profile(result, MBTI_PROFILES, mbti_type)


def calculate_disc(
    answers: Mapping[str, Any], questions: Sequence[AssessmentQuestion]
) -> dict:
    scores = _tally(answers, questions, DISC_DIMENSIONS)
    total = sum(scores.values())
    percentages = {dim: percentage(scores[dim], total) for dim in DISC_DIMENSIONS}

    ranked = sorted(DISC_DIMENSIONS, key=lambda dim: scores[dim], reverse=True)
    first, second = ranked[0], ranked[1]
    if (
        scores[first] > 0
        and scores[second] > 0
        and abs(percentages[first] - percentages[second]) < DISC_BLEND_THRESHOLD
    ):
        disc_type = "".join(sorted((first, second), key=DISC_DIMENSIONS.index))
    else:
        disc_type = first

    result = {"type": disc_type, "scores": scores, "percentages": percentages}
    return _with_profile(result, DISC_PROFILES, disc_type)


def calculate_holland(
    answers: Mapping[str, Any], questions: Sequence[AssessmentQuestion]
) -> dict:
    """Holland (RIASEC) code: the three highest themes, letters sorted
    alphabetically. The profile is that of the highest theme."""
    scores = _tally(answers, questions, HOLLAND_DIMENSIONS)
    total = sum(scores.values())
    percentages = {dim: percentage(scores[dim], total) for dim in HOLLAND_DIMENSIONS}

    # sorted() is stable, so ties keep RIASEC order
    top = sorted(HOLLAND_DIMENSIONS, key=lambda dim: scores[dim], reverse=True)[:3]
    code = "".join(sorted(top))
    profile = HOLLAND_PROFILES[top[0]]

    return {
        "type": code,
        "primary": top[0],
        "scores": scores,
        "percentages": percentages,
        "description": profile["description"],
        "strengths": list(profile["strengths"]),
        "careers": list(profile["careers"]),
        "work_environment": list(profile["work_environment"]),
        "skills": list(profile["skills"]),
    }


def _msq_recommendations(total: int, intrinsic: int, extrinsic: int) -> list[str]:
    recommendations = []
    if total < 50:
        recommendations.append("Identify the main sources of dissatisfaction")
        recommendations.append("Discuss working conditions with your manager or HR")
    if intrinsic < 50:
        recommendations.append("Look for learning and skill development opportunities")
        recommendations.append("Ask for more varied and challenging work")
    if extrinsic < 50:
        recommendations.append("Review pay and benefits")
        recommendations.append("Work on relationships with colleagues and your manager")
    if total >= 65:
        recommendations.append("Keep reinforcing what already works well")
    return recommendations


def calculate_msq(
    answers: Mapping[str, Any], questions: Sequence[AssessmentQuestion]
) -> dict:
    """Minnesota Satisfaction Questionnaire.

    Items 1-12 (by question order) measure intrinsic satisfaction and items
    13-20 extrinsic satisfaction. Every item is worth at most 5 points.
    """
    ordered = sorted(questions, key=lambda q: q.order or 0)
    position = {str(q.id): index for index, q in enumerate(ordered, start=1)}

    intrinsic = extrinsic = total = 0.0
    for question, option in _answered(answers, questions):
        points = _msq_points(option)
        total += points
        item = position[str(question.id)]
        if item in MSQ_INTRINSIC_ITEMS:
            intrinsic += points
        elif item in MSQ_EXTRINSIC_ITEMS:
            extrinsic += points

    percentages = {
        "intrinsic": percentage(intrinsic, len(MSQ_INTRINSIC_ITEMS) * MSQ_MAX_ITEM_SCORE),
        "extrinsic": percentage(extrinsic, len(MSQ_EXTRINSIC_ITEMS) * MSQ_MAX_ITEM_SCORE),
        "total": percentage(total, len(questions) * MSQ_MAX_ITEM_SCORE),
    }
    level, description = next(
        (name, text) for floor, name, text in MSQ_LEVELS if percentages["total"] >= floor
    )

    return {
        "scores": {"intrinsic": intrinsic, "extrinsic": extrinsic, "total": total},
        "percentages": percentages,
        "level": level,
        "description": description,
        "recommendations": _msq_recommendations(
            percentages["total"], percentages["intrinsic"], percentages["extrinsic"]
        ),
    }


def calculate_custom(
    answers: Mapping[str, Any], questions: Sequence[AssessmentQuestion]
) -> dict:
    total_score = 0.0
    max_score = 0.0
    for question in questions:
        answer = answers.get(str(question.id))
        if answer is not None:
            option = _find_option(question, answer)
            if option is not None:
                total_score += _option_points(option)
        if question.options:
            max_score += max(_option_points(opt) for opt in question.options)

    pct = percentage(total_score, max_score)
    return {"total_score": total_score, "max_score": max_score, "percentage": pct}


def calculate_assessment_score(
    assessment_type: str,
    answers: Mapping[str, Any],
    questions: Sequence[AssessmentQuestion],
) -> dict:
    """Score a submission. Returns {score, personality_type, details}."""
    typed = {
        AssessmentType.MBTI.value: calculate_mbti,
        AssessmentType.DISC.value: calculate_disc,
        AssessmentType.HOLLAND.value: calculate_holland,
    }
    if assessment_type in typed:
        details = typed[assessment_type](answers, questions)
        return {"score": 100, "personality_type": details["type"], "details": details}
    if assessment_type == AssessmentType.MSQ.value:
        details = calculate_msq(answers, questions)
        return {
            "score": details["percentages"]["total"],
            "personality_type": details["level"],
            "details": details,
        }
    if assessment_type == AssessmentType.CUSTOM.value:
        details = calculate_custom(answers, questions)
        return {
            "score": details["percentage"],
            "personality_type": f"{details['percentage']}%",
            "details": details,
        }
    raise ScoringError(f"Unknown assessment type: {assessment_type}")


def validate_answers(
    answers: Mapping[str, Any], questions: Sequence[AssessmentQuestion]
) -> list[str]:
    """Ids of required questions without an answer."""
    return [
        str(q.id)
        for q in questions
        if q.is_required and not answers.get(str(q.id))
    ]
