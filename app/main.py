"""
Streamlit Dashboard for KwachaLite

A thin view over the FinanceApp container. All state lives in the store;
this page only renders it and dispatches mutations.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every change is saved locally first, then synced
3. The user always sees whether changes are still waiting to sync
4. Clear error messages in simple language

Streamlit reruns this script on every interaction, so there is no
long-running sync task here. The queue is drained after each change and on
the "Sync now" button instead.
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st
from pydantic import ValidationError

from kwachalite.config import SUPPORTED_CURRENCIES, validate_all_settings
from kwachalite.models.finance import Transaction, TransactionType, Workspace
from kwachalite.orchestrator import FinanceApp, create_app_components


# Page configuration
st.set_page_config(
    page_title="KwachaLite",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_app() -> FinanceApp:
    """Get or create the application container (cached)."""
    try:
        return create_app_components(use_remote=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_remote=False)


def render_sync_banner(app: FinanceApp):
    """Connection and pending-change banner shown on every page."""
    status = app.status.snapshot()

    if not status.is_online:
        st.warning(
            f"📴 You're offline. {status.queue_length} change(s) saved on this device "
            "will sync when you're back online."
        )
    elif status.sync_error:
        st.error(f"⚠️ Sync problem: {status.sync_error}. We'll keep retrying.")
    elif status.has_unsaved_changes:
        st.info(f"🔄 {status.queue_length} change(s) waiting to sync.")
    elif status.last_sync_time:
        st.caption(f"✅ All changes synced at {status.last_sync_time:%H:%M:%S}")

    warning = app.unload_guard.before_unload()
    if warning:
        st.caption(warning)


def sync_now(app: FinanceApp):
    report = run_async(app.worker.drain())
    if report.skipped_offline:
        st.toast("Offline - changes will sync later")
    elif report.stopped_early:
        st.toast(f"Synced {len(report.delivered)}, will retry the rest")
    elif report.delivered:
        st.toast(f"Synced {len(report.delivered)} change(s)")


def main():
    """Main application entry point."""
    app = get_app()
    workspace = app.preferences.workspace

    # Sidebar navigation
    st.sidebar.title("💰 KwachaLite")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🏠 Overview", "➕ Add Transaction", "📊 Budgets", "🎯 Goals", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    chosen = st.sidebar.selectbox(
        "Workspace",
        options=list(Workspace),
        index=list(Workspace).index(workspace),
        format_func=lambda ws: ws.value.title(),
    )
    if chosen != workspace:
        app.preferences.set_workspace(chosen)
        workspace = chosen

    online = st.sidebar.toggle("Online", value=app.connectivity.is_online)
    if online != app.connectivity.is_online:
        app.connectivity.set_online(online)
    if st.sidebar.button("🔄 Sync now"):
        sync_now(app)

    render_sync_banner(app)

    # Route to appropriate page
    if page == "🏠 Overview":
        render_overview_page(app, workspace)
    elif page == "➕ Add Transaction":
        render_add_transaction_page(app, workspace)
    elif page == "📊 Budgets":
        render_budgets_page(app, workspace)
    elif page == "🎯 Goals":
        render_goals_page(app, workspace)
    elif page == "⚙️ Settings":
        render_settings_page(app)


def render_overview_page(app: FinanceApp, workspace: Workspace):
    currency = app.preferences.currency
    overview = app.summaries.overview(workspace)

    st.title("🏠 Overview")
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", f"{currency} {overview.total_income:,.2f}")
    col2.metric("Expenses", f"{currency} {overview.total_expenses:,.2f}")
    col3.metric("Balance", f"{currency} {overview.balance:,.2f}")

    st.markdown("### Recent transactions")
    transactions = sorted(
        app.store.transactions.for_workspace(workspace),
        key=lambda t: t.date,
        reverse=True,
    )
    if not transactions:
        st.info("No transactions yet. Use 'Add Transaction' to record your first one.")
        return

    for txn in transactions[:20]:
        sign = "+" if txn.type == TransactionType.INCOME else "-"
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"**{txn.description}** · {txn.category} · {txn.date}")
        col2.markdown(f"{sign}{currency} {txn.amount:,.2f}")


def render_add_transaction_page(app: FinanceApp, workspace: Workspace):
    st.title("➕ Add Transaction")

    txn_type = st.radio(
        "Type",
        options=list(TransactionType),
        format_func=lambda t: t.value.title(),
        horizontal=True,
    )
    categories = [
        c for c in app.store.categories.for_workspace(workspace)
        if c.type == txn_type
    ]

    with st.form("add_transaction"):
        description = st.text_input("Description")
        amount = st.number_input("Amount", min_value=0.0, step=100.0, format="%.2f")
        txn_date = st.date_input("Date", value=date.today())
        category = st.selectbox(
            "Category",
            options=categories,
            format_func=lambda c: c.name,
        )
        submitted = st.form_submit_button("💾 Save")

    if not submitted:
        return

    try:
        txn = Transaction(
            date=txn_date,
            description=description,
            amount=Decimal(str(amount)).quantize(Decimal("0.01")),
            type=txn_type,
            category=category.name if category else "",
            category_id=category.id if category else None,
            workspace=workspace,
        )
    except ValidationError as e:
        st.error("Please fix the following:")
        for err in e.errors():
            st.markdown(f"- **{'.'.join(str(p) for p in err['loc'])}**: {err['msg']}")
        return

    validation = app.validator.validate(txn)
    if not validation.is_valid:
        st.error(app.validator.get_user_friendly_summary(validation))
        return
    if validation.warnings:
        st.warning(app.validator.get_user_friendly_summary(validation))

    result = app.store.transactions.add(txn)
    if result.persisted:
        st.success("✅ Saved on this device.")
    else:
        st.warning("Saved for this session, but it could not be written to disk.")
    sync_now(app)


def render_budgets_page(app: FinanceApp, workspace: Workspace):
    currency = app.preferences.currency
    st.title("📊 Budgets")

    progress = app.summaries.budget_progress(workspace)
    if not progress:
        st.info("No budgets yet. Set one on an expense category below.")

    for budget in progress:
        label = (
            f"{budget.category_name}: {currency} {budget.spent:,.2f} of "
            f"{currency} {budget.budget:,.2f} ({budget.frequency.value})"
        )
        st.progress(min(budget.progress, 100.0) / 100, text=label)
        if budget.over_budget:
            st.caption(f"⚠️ Over budget by {currency} {budget.spent - budget.budget:,.2f}")

    st.markdown("---")
    st.markdown("### Set a budget")
    expense_categories = [
        c for c in app.store.categories.for_workspace(workspace)
        if c.type == TransactionType.EXPENSE
    ]
    with st.form("set_budget"):
        category = st.selectbox(
            "Category",
            options=expense_categories,
            format_func=lambda c: c.name,
        )
        amount = st.number_input("Monthly budget", min_value=0.0, step=1000.0, format="%.2f")
        submitted = st.form_submit_button("💾 Save budget")

    if submitted and category:
        value = Decimal(str(amount)).quantize(Decimal("0.01")) if amount > 0 else None
        app.store.set_category_budget(category.id, value)
        st.success(f"Budget for {category.name} saved.")
        sync_now(app)


def render_goals_page(app: FinanceApp, workspace: Workspace):
    currency = app.preferences.currency
    st.title("🎯 Savings Goals")

    goals = app.store.savings_goals.for_workspace(workspace)
    if not goals:
        st.info("No savings goals yet.")
        return

    for goal in goals:
        progress = app.summaries.goal_progress(goal)
        st.markdown(f"**{goal.name}** · due {goal.deadline}")
        st.progress(
            progress.progress / 100,
            text=f"{currency} {goal.current_amount:,.2f} of {currency} {goal.target_amount:,.2f}",
        )
        col1, col2 = st.columns([3, 1])
        amount = col1.number_input(
            "Contribution",
            min_value=0.0,
            step=100.0,
            key=f"contribute-{goal.id}",
        )
        if col2.button("Add", key=f"add-{goal.id}") and amount > 0:
            app.store.contribute_to_goal(goal.id, Decimal(str(amount)).quantize(Decimal("0.01")))
            sync_now(app)
            st.rerun()


def render_settings_page(app: FinanceApp):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Currency")
    current = app.preferences.currency
    currency = st.selectbox(
        "Display currency",
        options=list(SUPPORTED_CURRENCIES),
        index=list(SUPPORTED_CURRENCIES).index(current),
    )
    if currency != current:
        app.preferences.set_currency(currency)
        st.success(f"Currency set to {currency}")

    st.markdown("### Sync")
    status = app.status.snapshot()
    st.markdown(f"- Pending changes: **{status.queue_length}**")
    st.markdown(f"- Online: **{'yes' if status.is_online else 'no'}**")
    if st.button("⬇️ Refresh from server"):
        refreshed = run_async(app.refresh_from_remote())
        skipped = [entity.value for entity, ok in refreshed.items() if not ok]
        if skipped:
            st.info(f"Not refreshed (pending changes or unavailable): {', '.join(skipped)}")
        else:
            st.success("All data refreshed.")

    st.markdown("### Connection Status")
    checks = validate_all_settings()
    services = [
        ("Local store", "store"),
        ("Sync", "sync"),
        ("Google Sheets (Remote)", "google_sheets"),
        ("Application", "app"),
    ]
    for name, key in services:
        if checks.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = checks.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Recent activity")
    for event in app.audit_logger.recent_events(limit=10):
        st.caption(f"{event.timestamp:%H:%M:%S} · {event.description}")


if __name__ == "__main__":
    main()
