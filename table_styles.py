"""
table_styles.py - Table Styling, Formatting and List Controls
Consistent tables, metric cards, expiry badges and the search / sort /
pagination controls shared by every list page.
"""

import html

import streamlit as st
import pandas as pd

from config import Config
from expiry import parse_date, SEVERITY_CRITICAL, SEVERITY_WARNING, SEVERITY_EXPIRING
from list_manager import ListState, ASC


# =============================================================================
# VALUE FORMATTING
# =============================================================================

def format_currency(value, currency=None, show_symbol=True):
    """
    Format a number as currency.

    Args:
        value: Number to format
        currency: Currency code, defaults to Config.CURRENCY
        show_symbol: Whether to prefix the currency code

    Returns:
        Formatted string like "QAR 1,234.56"
    """
    try:
        num = float(value) if value is not None else 0
    except (ValueError, TypeError):
        num = 0

    if show_symbol:
        return f"{currency or Config.CURRENCY} {num:,.2f}"
    return f"{num:,.2f}"


def format_number(value, decimals=0):
    """Format a number with thousand separators"""
    try:
        num = float(value) if value is not None else 0
        if decimals == 0:
            return f"{int(num):,}"
        return f"{num:,.{decimals}f}"
    except (ValueError, TypeError):
        return "0"


def format_percentage(value, decimals=1):
    try:
        num = float(value) if value is not None else 0
        return f"{num:,.{decimals}f}%"
    except (ValueError, TypeError):
        return "0%"


def format_date(value, fmt='%d %b %Y'):
    """Date-ish value -> display string, 'N/A' when missing or malformed"""
    parsed = parse_date(value)
    return parsed.strftime(fmt) if parsed else 'N/A'


# =============================================================================
# DATAFRAME STYLING
# =============================================================================

def style_dataframe(df, currency_columns=None, number_columns=None,
                    percentage_columns=None, date_columns=None, currency=None):
    """
    Apply consistent display formatting to a dataframe.

    Returns:
        Formatted copy ready for st.dataframe
    """
    if df.empty:
        return df

    styled_df = df.copy()

    for col in currency_columns or []:
        if col in styled_df.columns:
            styled_df[col] = styled_df[col].apply(lambda x: format_currency(x, currency))

    for col in number_columns or []:
        if col in styled_df.columns:
            styled_df[col] = styled_df[col].apply(format_number)

    for col in percentage_columns or []:
        if col in styled_df.columns:
            styled_df[col] = styled_df[col].apply(format_percentage)

    for col in date_columns or []:
        if col in styled_df.columns:
            styled_df[col] = pd.to_datetime(styled_df[col], errors='coerce').dt.strftime('%d %b %Y')

    return styled_df


SEVERITY_COLORS = {
    SEVERITY_CRITICAL: ('#f8d7da', '#721c24'),
    SEVERITY_WARNING: ('#fff3cd', '#856404'),
    SEVERITY_EXPIRING: ('#d1ecf1', '#0c5460'),
    'expired': ('#dc3545', '#ffffff'),
}


def get_table_style():
    """Return CSS for styled tables and badges"""
    badges = "\n".join(
        f"    .badge-{name} {{ background-color: {bg}; color: {fg}; }}"
        for name, (bg, fg) in SEVERITY_COLORS.items()
    )
    return f"""
    <style>
    .styled-table {{
        width: 100%;
        border-collapse: collapse;
        margin: 15px 0;
        font-size: 14px;
        border-radius: 8px;
        overflow: hidden;
        box-shadow: 0 2px 8px rgba(0,0,0,0.1);
    }}
    .styled-table thead tr {{
        background: linear-gradient(135deg, #1e3a8a 0%, #2563eb 100%);
        color: white;
        text-align: left;
        font-weight: 600;
    }}
    .styled-table th, .styled-table td {{
        padding: 10px 14px;
        border-bottom: 1px solid #e0e0e0;
    }}
    .styled-table tbody tr:nth-of-type(even) {{
        background-color: #f8f9fa;
    }}
    .badge {{
        padding: 3px 10px;
        border-radius: 20px;
        font-size: 12px;
        font-weight: 600;
        display: inline-block;
    }}
{badges}
    </style>
    """


def severity_badge(severity, text=None):
    """HTML badge for an expiry severity"""
    label = html.escape(str(text if text is not None else severity).title())
    return f'<span class="badge badge-{severity}">{label}</span>'


def render_styled_table(df, title=None, badge_column=None, badge_for=None):
    """
    Render a styled HTML table.

    Args:
        df: Pandas DataFrame, already formatted for display
        title: Optional table title
        badge_column: Column rendered as a badge
        badge_for: Callable mapping a badge cell value to a severity key
    """
    if df.empty:
        st.info("No data to display")
        return

    st.markdown(get_table_style(), unsafe_allow_html=True)

    parts = ['<table class="styled-table"><thead><tr>']
    parts += [f'<th>{html.escape(str(col))}</th>' for col in df.columns]
    parts.append('</tr></thead><tbody>')

    for _, row in df.iterrows():
        parts.append('<tr>')
        for col in df.columns:
            value = row[col]
            if pd.isna(value):
                cell = '-'
            elif badge_column and col == badge_column and badge_for:
                cell = severity_badge(badge_for(value), value)
            else:
                cell = html.escape(str(value))
            parts.append(f'<td>{cell}</td>')
        parts.append('</tr>')
    parts.append('</tbody></table>')

    if title:
        st.markdown(f"**{title}**")
    st.markdown(''.join(parts), unsafe_allow_html=True)


# =============================================================================
# METRIC CARDS
# =============================================================================

def render_metric_card(label, value, delta=None, delta_color="normal",
                       icon=None, is_currency=False):
    if is_currency:
        formatted_value = format_currency(value)
    else:
        formatted_value = format_number(value) if isinstance(value, (int, float)) else str(value)

    if icon:
        label = f"{icon} {label}"

    if delta is not None:
        st.metric(label, formatted_value, delta=delta, delta_color=delta_color)
    else:
        st.metric(label, formatted_value)


def render_summary_cards(metrics, columns=4):
    """
    Render a row of summary metric cards.

    Args:
        metrics: List of dicts with keys: label, value, delta (optional),
                 icon (optional), is_currency (default False)
        columns: Number of columns
    """
    cols = st.columns(columns)

    for idx, metric in enumerate(metrics):
        with cols[idx % columns]:
            render_metric_card(
                label=metric.get('label', ''),
                value=metric.get('value', 0),
                delta=metric.get('delta'),
                delta_color=metric.get('delta_color', 'normal'),
                icon=metric.get('icon'),
                is_currency=metric.get('is_currency', False),
            )


# =============================================================================
# LIST CONTROLS
# =============================================================================

def get_list_state(key, sort_key=None, sort_dir=ASC, filters=None):
    """ListState of one table, kept in the session across reruns"""
    state_key = f"list_state_{key}"
    if state_key not in st.session_state:
        st.session_state[state_key] = ListState(sort_key=sort_key, sort_dir=sort_dir, filters=filters)
    return st.session_state[state_key]


def render_search_box(state, key, placeholder="Search..."):
    term = st.text_input("🔍 Search", value=state.search, placeholder=placeholder, key=f"{key}_search")
    state.set_search(term)


def render_filter_select(state, key, field, label, options, format_func=None):
    """Selectbox bound to one filter; options exclude the 'all' entry"""
    choices = ['all'] + list(options)
    current = state.filters.get(field, 'all')
    index = choices.index(current) if current in choices else 0
    value = st.selectbox(
        label, choices, index=index, key=f"{key}_filter_{field}",
        format_func=format_func or (lambda v: 'All' if v == 'all' else str(v)),
    )
    state.set_filter(field, value)


def render_sort_control(state, key, columns):
    """
    Sort selector. Picking the current column again flips the direction.

    Args:
        columns: {field: label}
    """
    col1, col2 = st.columns([3, 1])
    fields = list(columns)
    with col1:
        index = fields.index(state.sort_key) if state.sort_key in fields else 0
        chosen = st.selectbox("Sort by", fields, index=index,
                              format_func=lambda f: columns[f], key=f"{key}_sort_key")
    with col2:
        arrow = "⬆️" if state.sort_dir == ASC else "⬇️"
        if st.button(f"{arrow} Toggle", key=f"{key}_sort_dir"):
            state.sort_by(chosen)
            st.rerun()
    if chosen != state.sort_key:
        state.sort_by(chosen)


def render_pagination(state, result, key, page_size):
    """Previous / next buttons and the 'showing x to y of n' line"""
    total = result['total']
    if not total:
        return

    page_size = max(page_size, 1)
    first = (state.page - 1) * page_size + 1 if result['page'] else 0
    last = first + len(result['page']) - 1 if result['page'] else 0

    col1, col2, col3 = st.columns([1, 2, 1])
    with col1:
        if st.button("◀ Previous", key=f"{key}_prev", disabled=state.page <= 1):
            state.go_to(state.page - 1, result['total_pages'])
            st.rerun()
    with col2:
        st.caption(f"Page {state.page} of {result['total_pages']} · showing {first} to {last} of {total}")
    with col3:
        if st.button("Next ▶", key=f"{key}_next", disabled=state.page >= result['total_pages']):
            state.go_to(state.page + 1, result['total_pages'])
            st.rerun()
