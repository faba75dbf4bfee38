"""
UI Components and Styling for Study Planner
Dark SaaS-style dashboard components
"""
import streamlit as st

from security import sanitize_html

# ============ GLOBAL CSS ============
GLOBAL_CSS = """
<style>
/* Typography */
h1 {
    font-size: 1.8rem !important;
    font-weight: 600 !important;
    margin-bottom: 0.5rem !important;
}
h3 {
    font-size: 1.15rem !important;
    font-weight: 600 !important;
    margin-bottom: 0.5rem !important;
}
@media (max-width: 768px) {
    h1 { font-size: 1.5rem !important; }
    h3 { font-size: 1.05rem !important; }
}

/* Card styling */
.saas-card {
    background: rgba(255, 255, 255, 0.03);
    border: 1px solid rgba(255, 255, 255, 0.08);
    border-radius: 12px;
    padding: 1.25rem;
    margin-bottom: 1rem;
}
.saas-card-header {
    font-size: 0.85rem;
    font-weight: 500;
    color: rgba(255, 255, 255, 0.6);
    text-transform: uppercase;
    letter-spacing: 0.5px;
    margin-bottom: 0.75rem;
}

/* KPI cards */
.kpi-card {
    background: rgba(255, 255, 255, 0.04);
    border: 1px solid rgba(255, 255, 255, 0.1);
    border-radius: 10px;
    padding: 1rem 1.25rem;
    text-align: center;
}
.kpi-label {
    font-size: 0.75rem;
    font-weight: 500;
    color: rgba(255, 255, 255, 0.55);
    text-transform: uppercase;
    letter-spacing: 0.4px;
    margin-bottom: 0.35rem;
}
.kpi-value {
    font-size: 1.75rem;
    font-weight: 600;
    color: rgba(255, 255, 255, 0.95);
    line-height: 1.2;
}
.kpi-subtext {
    font-size: 0.75rem;
    color: rgba(255, 255, 255, 0.45);
    margin-top: 0.25rem;
}
.kpi-card-success { border-color: rgba(34, 197, 94, 0.25); background: rgba(34, 197, 94, 0.08); }
.kpi-card-success .kpi-value { color: #22c55e; }
.kpi-card-warning { border-color: rgba(234, 179, 8, 0.25); background: rgba(234, 179, 8, 0.08); }
.kpi-card-warning .kpi-value { color: #eab308; }
.kpi-card-danger { border-color: rgba(239, 68, 68, 0.25); background: rgba(239, 68, 68, 0.08); }
.kpi-card-danger .kpi-value { color: #ef4444; }
.kpi-card-info { border-color: rgba(59, 130, 246, 0.25); background: rgba(59, 130, 246, 0.08); }
.kpi-card-info .kpi-value { color: #3b82f6; }
@media (max-width: 480px) {
    .kpi-card { padding: 0.75rem 0.85rem; }
    .kpi-value { font-size: 1.3rem; }
}

/* Performance level badge */
.level-badge {
    display: inline-block;
    padding: 0.35rem 0.75rem;
    border-radius: 6px;
    font-size: 0.8rem;
    font-weight: 600;
    letter-spacing: 0.3px;
}
.level-excellent { background: rgba(34, 197, 94, 0.15); color: #22c55e; border: 1px solid rgba(34, 197, 94, 0.3); }
.level-good { background: rgba(59, 130, 246, 0.15); color: #3b82f6; border: 1px solid rgba(59, 130, 246, 0.3); }
.level-fair { background: rgba(234, 179, 8, 0.15); color: #eab308; border: 1px solid rgba(234, 179, 8, 0.3); }
.level-needs-improvement { background: rgba(239, 68, 68, 0.15); color: #ef4444; border: 1px solid rgba(239, 68, 68, 0.3); }
.level-message {
    margin-top: 0.6rem;
    font-size: 0.9rem;
    color: rgba(255, 255, 255, 0.8);
}

/* Recommendation list */
.rec-item {
    padding: 0.55rem 0;
    border-bottom: 1px solid rgba(255, 255, 255, 0.05);
    font-size: 0.9rem;
    color: rgba(255, 255, 255, 0.85);
}
.rec-item:last-child { border-bottom: none; }
.rec-number {
    color: rgba(255, 255, 255, 0.4);
    margin-right: 0.5rem;
}

/* Empty state card */
.empty-state-card {
    background: rgba(255, 255, 255, 0.03);
    border: 1px solid rgba(255, 255, 255, 0.08);
    border-radius: 12px;
    padding: 2.5rem 2rem;
    text-align: center;
    max-width: 480px;
    margin: 2rem auto;
}
.empty-state-title {
    font-size: 1.25rem;
    font-weight: 600;
    color: rgba(255, 255, 255, 0.9);
    margin-bottom: 0.5rem;
}
.empty-state-desc {
    font-size: 0.9rem;
    color: rgba(255, 255, 255, 0.55);
    margin-bottom: 1.5rem;
}

/* Buttons */
.stButton > button, .stFormSubmitButton > button {
    border-radius: 8px !important;
    font-weight: 500 !important;
}
.stButton > button[kind="primary"], .stFormSubmitButton > button[kind="primary"] {
    background: linear-gradient(135deg, #ef4444 0%, #dc2626 100%) !important;
    border: 1px solid rgba(239, 68, 68, 0.3) !important;
}
</style>
"""

LEVEL_LABELS = {
    "excellent": "EXCELLENT",
    "good": "GOOD",
    "fair": "FAIR",
    "needs-improvement": "NEEDS IMPROVEMENT",
}


def inject_css():
    """Inject global CSS styles into the Streamlit app."""
    st.markdown(GLOBAL_CSS, unsafe_allow_html=True)


def format_minutes(minutes) -> str:
    """90 -> '1h 30m', 45 -> '45m'."""
    minutes = int(round(minutes or 0))
    hours, rest = divmod(minutes, 60)
    if hours and rest:
        return f"{hours}h {rest}m"
    if hours:
        return f"{hours}h"
    return f"{rest}m"


def rate_variant(rate: float) -> str:
    """KPI color for a 0-100 percentage."""
    if rate >= 85:
        return "success"
    if rate >= 50:
        return "warning"
    return "danger"


def metric_card(label: str, value: str, subtext: str = None, variant: str = None) -> str:
    """
    Generate HTML for a KPI metric card.

    Args:
        label: Small label text above the value
        value: Large main value
        subtext: Optional small text below the value
        variant: Color variant - 'success', 'warning', 'danger', 'info', or None

    Returns:
        HTML string for the metric card
    """
    subtext_html = f'<div class="kpi-subtext">{sanitize_html(subtext)}</div>' if subtext else ''
    variant_class = f' kpi-card-{variant}' if variant else ''
    return f'''
    <div class="kpi-card{variant_class}">
        <div class="kpi-label">{sanitize_html(label)}</div>
        <div class="kpi-value">{sanitize_html(str(value))}</div>
        {subtext_html}
    </div>
    '''


def render_kpi_row(metrics: list):
    """
    Render a row of KPI metric cards.

    Args:
        metrics: List of dicts with keys: label, value, subtext (optional), variant (optional)
    """
    cols = st.columns(len(metrics))
    for col, m in zip(cols, metrics):
        with col:
            st.markdown(
                metric_card(m['label'], m['value'], m.get('subtext'), m.get('variant')),
                unsafe_allow_html=True
            )


def level_badge(level: str) -> str:
    text = LEVEL_LABELS.get(level, level.upper())
    return f'<span class="level-badge level-{level}">{text}</span>'


def render_interpretation(interpretation: dict):
    """Performance level badge, message and numbered recommendations."""
    card_start("Performance")
    st.markdown(
        f'{level_badge(interpretation["level"])}'
        f'<div class="level-message">{sanitize_html(interpretation["message"])}</div>',
        unsafe_allow_html=True
    )
    card_end()

    card_start("Recommendations")
    items = "".join(
        f'<div class="rec-item"><span class="rec-number">{i}.</span>{sanitize_html(rec)}</div>'
        for i, rec in enumerate(interpretation["recommendations"], start=1)
    )
    st.markdown(items, unsafe_allow_html=True)
    card_end()


def render_goal_progress(goals: list):
    """
    Progress bars for study goals.

    Args:
        goals: List of {'goal': StudyGoal, 'progress': percent}
    """
    for entry in goals:
        goal = entry['goal']
        progress = entry['progress']
        st.markdown(f"**{sanitize_html(goal.subject)}** · {goal.target_hours:g}h {goal.period}")
        st.progress(min(int(progress), 100) / 100, text=f"{progress:.0f}%")


def render_empty_state(title: str, description: str, button_label: str, key: str) -> bool:
    """
    Render a centered empty state card with CTA button.

    Returns:
        True if button was clicked, False otherwise
    """
    st.markdown(f'''
    <div class="empty-state-card">
        <div class="empty-state-title">{sanitize_html(title)}</div>
        <div class="empty-state-desc">{sanitize_html(description)}</div>
    </div>
    ''', unsafe_allow_html=True)

    col1, col2, col3 = st.columns([1, 1, 1])
    with col2:
        return st.button(button_label, type="primary", use_container_width=True, key=f"empty_state_{key}")


def section_header(title: str, margin_top: bool = True):
    """Render a section header with consistent styling."""
    margin = "margin-top: 2rem;" if margin_top else ""
    st.markdown(f'<h3 style="{margin}">{sanitize_html(title)}</h3>', unsafe_allow_html=True)


def card_start(title: str = None):
    """Start a card container. Must be paired with card_end()."""
    html = '<div class="saas-card">'
    if title:
        html += f'<div class="saas-card-header">{sanitize_html(title)}</div>'
    st.markdown(html, unsafe_allow_html=True)


def card_end():
    """End a card container started with card_start()."""
    st.markdown('</div>', unsafe_allow_html=True)
