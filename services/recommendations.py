"""
Performance interpretation and study recommendations.
Pure Python business logic - NO Streamlit dependencies.
"""

from typing import Dict, List

LEVEL_MESSAGES = {
    "excellent": "Your performance is excellent! You finish assignments reliably and plan your time accurately.",
    "good": "Good work! You are on track with most of your assignments.",
    "fair": "Fair progress. There is room to improve how many assignments you finish and how well you plan them.",
    "needs-improvement": "Your performance needs improvement. Focus on finishing assignments and refining your time estimates.",
}

REC_COMPLETION = "Improve your assignment completion rate by breaking large tasks into smaller steps."
REC_PLANNING = "Your time estimates differ from the actual effort. Add buffer time when planning assignments."
REC_HIGH_PRIORITY = "Many of your assignments are high priority. Start on them early to avoid last-minute pressure."
REC_WEEKLY = "You completed less than half of your assignments in a recent week. Set weekly checkpoints to stay on track."
REC_COURSES = "Some courses are falling behind. Schedule dedicated study time for them."
REC_DEFAULT = "Great job! Keep up your consistent study habits."


def get_performance_level(completion_rate: float, planning_accuracy: float) -> str:
    """Map the mean of completion rate and planning accuracy to a level."""
    score = (completion_rate + planning_accuracy) / 2
    if score >= 85:
        return "excellent"
    if score >= 70:
        return "good"
    if score >= 50:
        return "fair"
    return "needs-improvement"


def generate_recommendations(metrics: Dict) -> List[str]:
    """
    Build the recommendation list for an assignment metrics aggregate.

    Rules are checked in a fixed order and each adds at most one line.

    Args:
        metrics: Dict with completion_rate, planning_accuracy,
                 priority_distribution, weekly_progress, course_progress

    Returns:
        List of recommendation strings (never empty)
    """
    recommendations = []

    if metrics["completion_rate"] < 70:
        recommendations.append(REC_COMPLETION)

    if metrics["planning_accuracy"] < 70:
        recommendations.append(REC_PLANNING)

    distribution = metrics.get("priority_distribution") or {}
    total = sum(distribution.values())
    if total > 0 and distribution.get("high", 0) / total > 0.4:
        recommendations.append(REC_HIGH_PRIORITY)

    # Only the most recent four weeks matter
    recent_weeks = (metrics.get("weekly_progress") or [])[-4:]
    if any(w["total"] > 0 and w["completed"] / w["total"] < 0.5 for w in recent_weeks):
        recommendations.append(REC_WEEKLY)

    if any(c["completion"] < 50 for c in metrics.get("course_progress") or []):
        recommendations.append(REC_COURSES)

    if not recommendations:
        recommendations.append(REC_DEFAULT)

    return recommendations


def get_metrics_interpretation(metrics: Dict) -> Dict:
    """
    Qualitative reading of an assignment metrics aggregate.

    Returns:
        {"level": str, "message": str, "recommendations": [str, ...]}
    """
    level = get_performance_level(metrics["completion_rate"], metrics["planning_accuracy"])
    return {
        "level": level,
        "message": LEVEL_MESSAGES[level],
        "recommendations": generate_recommendations(metrics),
    }
