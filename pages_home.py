"""
pages_home.py - Dashboard Overview
Headline counts, document expiry status and distribution charts computed
from the session's collections on every rerun.
"""

from datetime import date

import streamlit as st
import pandas as pd
import plotly.express as px

from analytics import people_analytics, branch_analytics, expenditure_summary, branch_expenditures, distribution
from audit_logger import AuditLogger
from auth import get_store, get_user_branch
from entities import branches_for_user
from reports import collect_entries, expiry_overview
from table_styles import render_summary_cards, format_currency, format_percentage


def _distribution_chart(counts, title, kind='pie'):
    rows = distribution(counts)
    if not rows:
        st.info(f"No data for {title.lower()}")
        return
    df = pd.DataFrame(rows)
    if kind == 'pie':
        fig = px.pie(df, values='count', names='label', title=title, hole=0.4)
    else:
        fig = px.bar(df, x='label', y='count', title=title, text='percentage')
        fig.update_traces(texttemplate='%{text}%')
        fig.update_layout(xaxis_title=None, yaxis_title='Count')
    st.plotly_chart(fig, use_container_width=True)


def home_page():
    """Overview of people, branches, documents and money"""
    st.header("🏠 Dashboard")
    st.markdown("Overview of all branches, staff and documents")
    st.markdown("---")

    store = get_store()
    today = date.today()
    employees = store['employees']
    temp_employees = store['temp_employees']
    branches = store['branches']

    people = people_analytics(employees, today)
    branch_stats = branch_analytics(branches, employees)
    overview = expiry_overview(collect_entries(today, branches, employees, temp_employees))
    user_branch = get_user_branch()
    expenditures = store['expenditures']
    if user_branch is not None:
        expenditures = branch_expenditures(expenditures, branches_for_user(branches, user_branch))
    money = expenditure_summary(expenditures)

    render_summary_cards([
        {'label': 'Employees', 'value': people['total'], 'icon': '👥'},
        {'label': 'Temporary Staff', 'value': len(temp_employees), 'icon': '🕒'},
        {'label': 'Branches', 'value': branch_stats['total'], 'icon': '🏢'},
        {'label': 'Vehicles', 'value': branch_stats['total_vehicles'], 'icon': '🚗'},
    ])
    render_summary_cards([
        {'label': 'Active Staff', 'value': people['active'], 'icon': '✅'},
        {'label': 'New Hires (30 days)', 'value': people['new_hires'], 'icon': '🆕'},
        {'label': 'Avg Tenure (months)', 'value': people['avg_tenure_months'], 'icon': '📆'},
        {'label': 'Active Branches', 'value': branch_stats['active_branches'], 'icon': '🏪'},
    ])

    st.markdown("---")
    st.subheader("📄 Document Status")
    render_summary_cards([
        {'label': 'Expired', 'value': overview['expired'], 'icon': '🔴'},
        {'label': 'Critical (≤7 days)', 'value': overview['critical'], 'icon': '🟠'},
        {'label': 'Warning (8-30 days)', 'value': overview['warning'], 'icon': '🟡'},
        {'label': 'Valid', 'value': overview['valid'], 'icon': '🟢'},
    ])

    if overview['expired'] or overview['critical']:
        st.error(
            f"⚠️ {overview['expired']} document(s) expired and {overview['critical']} expire within a week. "
            "Open **Document Expiry** for details."
        )

    if overview['by_type']:
        status_df = pd.DataFrame([
            {'Document': label, 'Status': status.title(), 'Count': count}
            for label, counts in overview['by_type'].items()
            for status, count in counts.items()
        ])
        fig = px.bar(
            status_df, x='Document', y='Count', color='Status', barmode='stack',
            title='Documents by Type and Status',
            color_discrete_map={'Expired': '#dc3545', 'Expiring': '#ffc107', 'Valid': '#28a745'},
        )
        st.plotly_chart(fig, use_container_width=True)

    st.markdown("---")
    col1, col2 = st.columns(2)
    with col1:
        _distribution_chart(people['by_branch'], 'Employees by Branch')
    with col2:
        _distribution_chart(people['by_role'], 'Employees by Role', kind='bar')

    st.markdown("---")
    st.subheader("💰 Expenditure Overview")
    render_summary_cards([
        {'label': 'Total Income', 'value': money['total_income'], 'is_currency': True},
        {'label': 'Total Expenses', 'value': money['total_expenses'], 'is_currency': True},
        {'label': 'Earnings', 'value': money['total_earnings'], 'is_currency': True},
        {'label': 'Profit Margin', 'value': format_percentage(money['profit_percentage'])},
    ])

    if money['by_branch']:
        branch_df = pd.DataFrame([
            {'Branch': name, 'Income': row['income'], 'Expenses': row['expenses']}
            for name, row in money['by_branch'].items()
        ])
        fig = px.bar(
            branch_df.melt(id_vars='Branch', var_name='Type', value_name='Amount'),
            x='Branch', y='Amount', color='Type', barmode='group',
            title='Income vs Expenses by Branch',
        )
        st.plotly_chart(fig, use_container_width=True)

    st.markdown("---")
    st.subheader("🕘 Recent Activity")
    activities = AuditLogger.get_recent_activities(limit=10)
    if activities:
        for activity in activities:
            st.markdown(
                f"- **{activity['username']}** · {activity['description']} "
                f"<span style='color:#6c757d'>({activity['timestamp']})</span>",
                unsafe_allow_html=True
            )
    else:
        st.info("No recent activity")

    if store.loaded_at:
        st.caption(
            f"Data loaded {store.loaded_at.strftime('%d %b %Y %H:%M')} · "
            f"average income {format_currency(money['avg_income'])} per record"
        )
