"""
Streamlit Frontend for Family Budget

This is the screen the family uses day to day: recording transactions,
planning upcoming payments and keeping categories and accounts tidy.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every action shows its outcome right next to the form
3. What the screen shows is what the server returned
4. No hidden actions

All state lives in one BudgetSession per browser session; the pages
only read session.state and call session flows.
"""

import asyncio
from datetime import date, datetime, timezone

import streamlit as st

from family_budget.config import get_settings, validate_all_settings
from family_budget.models import (
    AccountType,
    CategoryType,
    Density,
    Recurrence,
    Section,
    Theme,
    TransactionFilters,
    TransactionType,
)
from family_budget.orchestrator import BudgetSession, create_session
from family_budget.reports import (
    account_name,
    account_totals,
    category_name,
    format_money,
    format_totals,
    period_label,
    recurrence_label,
    role_label,
)


# Page configuration
st.set_page_config(
    page_title="Family Budget",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


def run_async(session: BudgetSession, coro):
    """
    Helper to run a session flow in Streamlit.

    The HTTP client is closed inside the same event loop, so the next
    action starts with a fresh connection pool on its own loop.
    """
    async def _run():
        try:
            return await coro
        finally:
            await session.aclose()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(_run())
    finally:
        loop.close()


def get_session() -> BudgetSession:
    """Get or create the budget session of this browser session."""
    if "budget_session" not in st.session_state:
        st.session_state.budget_session = create_session()
    return st.session_state.budget_session


def show_status(session: BudgetSession, section: Section):
    """Render the last outcome of a section, if any."""
    status = session.state.status(section)
    if status is None:
        return
    if status.is_error:
        st.error(status.message)
    else:
        st.success(status.message)


def main():
    """Main application entry point."""
    session = get_session()

    # Sidebar navigation
    st.sidebar.title("💰 Family Budget")
    st.sidebar.markdown("---")

    if not session.state.is_registered:
        render_registration_page(session)
        return

    state = session.state
    st.sidebar.markdown(f"**{state.user.name}** · {state.family.name}")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "💸 Transactions",
            "🗓️ Planned",
            "🏷️ Categories",
            "🏦 Accounts",
            "⚙️ Settings",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Reload everything"):
        session.invalidate()
        run_async(session, session.refresh_all())
        st.rerun()

    # Route to appropriate page
    if page == "💸 Transactions":
        render_transactions_page(session)
    elif page == "🗓️ Planned":
        render_planned_page(session)
    elif page == "🏷️ Categories":
        render_categories_page(session)
    elif page == "🏦 Accounts":
        render_accounts_page(session)
    elif page == "⚙️ Settings":
        render_settings_page(session)


def render_registration_page(session: BudgetSession):
    """Render the registration form shown before anything else."""
    st.title("👋 Welcome")
    st.markdown("Create a profile to start keeping the family budget.")

    app_settings = get_settings().app

    with st.form("registration"):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Your name *")
            email = st.text_input("Email *")
            password = st.text_input("Password *", type="password")
        with col2:
            currency = st.text_input("Currency *", value=app_settings.default_currency)
            locale = st.text_input("Locale", value=app_settings.default_locale)
            family_name = st.text_input("Family name", help="Leave empty to use the default")
        family_id = st.text_input(
            "Join existing family (id)",
            help="Only if someone already created the family",
        )
        submitted = st.form_submit_button("✅ Create profile", type="primary")

    if submitted:
        with st.spinner("Creating your profile..."):
            run_async(session, session.register(
                email=email,
                password=password,
                name=name,
                currency=currency,
                locale=locale,
                family_name=family_name,
                family_id=family_id,
            ))
        if session.state.is_registered:
            st.rerun()

    show_status(session, Section.REGISTRATION)


def render_reports_summary(session: BudgetSession):
    """Totals for the active period, exactly as reported by the server."""
    reports = session.state.reports
    show_status(session, Section.REPORTS)
    if reports is None:
        return

    col1, col2, col3 = st.columns(3)
    with col1:
        st.markdown("**Expenses**")
        st.markdown(f'<div class="big-number">{format_totals(reports.expenses.totals)}</div>', unsafe_allow_html=True)
    with col2:
        st.markdown("**Incomes**")
        st.markdown(f'<div class="big-number">{format_totals(reports.incomes.totals)}</div>', unsafe_allow_html=True)
    with col3:
        st.markdown("**Balance on accounts**")
        st.markdown(f'<div class="big-number">{format_totals(account_totals(reports))}</div>', unsafe_allow_html=True)

    if reports.expenses.by_category:
        with st.expander("📊 Expenses by category"):
            for item in reports.expenses.by_category:
                st.markdown(f"- {item.category_name}: {format_money(item.amount_minor, item.currency)}")


def render_transactions_page(session: BudgetSession):
    """Render the transactions page: period, filters, entry form and list."""
    state = session.state
    st.title("💸 Transactions")
    st.caption(period_label(state.period))

    # Period
    col1, col2, col3 = st.columns([2, 2, 1])
    with col1:
        start = st.date_input("From", value=state.period.start)
    with col2:
        end = st.date_input("To", value=state.period.end)
    with col3:
        if st.button("Apply period"):
            session.invalidate()
            run_async(session, session.change_period(start, end))
            st.rerun()

    render_reports_summary(session)
    st.markdown("---")

    # Entry form
    st.subheader("➕ New transaction")
    if not state.visible_accounts:
        st.info("Add an account first on the Accounts page.")
    else:
        categories = state.active_categories
        accounts = state.visible_accounts
        col1, col2 = st.columns(2)
        with col1:
            tx_type = st.selectbox(
                "Type",
                options=list(TransactionType),
                format_func=lambda x: x.value.title(),
            )
            account_ids = [a.id for a in accounts]
            account_id = st.selectbox(
                "Account *",
                options=account_ids,
                index=account_ids.index(state.selection.transaction_account_id)
                if state.selection.transaction_account_id in account_ids else 0,
                format_func=lambda x: account_name(accounts, x),
            )
            category_ids = [c.id for c in categories]
            category_id = st.selectbox(
                "Category *",
                options=category_ids,
                index=category_ids.index(state.selection.transaction_category_id)
                if state.selection.transaction_category_id in category_ids else 0,
                format_func=lambda x: category_name(categories, x),
            ) if category_ids else None
        with col2:
            amount = st.text_input("Amount (minor units) *", help="e.g. 15000 for 150.00")
            occurred_on = st.date_input("Date", value=date.today())
            comment = st.text_input("Comment")
        if account_id != state.selection.transaction_account_id:
            session.synchronizer.select_transaction_account(account_id)
        if category_id != state.selection.transaction_category_id:
            session.synchronizer.select_transaction_category(category_id)

        if st.button("✅ Save transaction", type="primary"):
            run_async(session, session.create_transaction(
                amount=amount,
                transaction_type=tx_type,
                comment=comment,
                occurred_at=datetime.combine(occurred_on, datetime.now(timezone.utc).time(), tzinfo=timezone.utc),
            ))
            st.rerun()

    show_status(session, Section.TRANSACTIONS)
    st.markdown("---")

    # Filters
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        type_filter = st.selectbox(
            "Filter by Type",
            options=[None] + list(TransactionType),
            format_func=lambda x: "All Types" if x is None else x.value.title(),
        )
    with col2:
        category_filter = st.selectbox(
            "Filter by Category",
            options=[None] + [c.id for c in state.categories],
            format_func=lambda x: "All Categories" if x is None else category_name(state.categories, x),
        )
    with col3:
        account_filter = st.selectbox(
            "Filter by Account",
            options=[None] + [a.id for a in state.accounts],
            format_func=lambda x: "All Accounts" if x is None else account_name(state.accounts, x),
        )
    with col4:
        member_filter = st.selectbox(
            "Filter by Member",
            options=[None] + [m.id for m in state.members],
            format_func=lambda x: "Everyone" if x is None else next(m.name for m in state.members if m.id == x),
        )

    filters = TransactionFilters(
        type=type_filter,
        category_id=category_filter,
        account_id=account_filter,
        member_id=member_filter,
    )
    if filters != state.filters:
        session.invalidate()
        run_async(session, session.change_filters(filters))
        st.rerun()

    if not state.transactions:
        st.info("📋 No transactions for this period and filters.")
        return

    for tx in state.transactions:
        sign = "−" if tx.type == TransactionType.EXPENSE else "+"
        st.markdown(
            f"**{tx.occurred_at.strftime('%d %b %Y')}** · "
            f"{category_name(state.categories, tx.category_id)} · "
            f"{account_name(state.accounts, tx.account_id)} · "
            f"{sign}{format_money(tx.amount_minor, tx.currency)} · "
            f"{tx.author.name}"
            + (f" · {tx.comment}" if tx.comment else "")
        )


def render_planned_page(session: BudgetSession):
    """Render planned operations: the form, then pending and completed lists."""
    state = session.state
    st.title("🗓️ Planned operations")

    st.subheader("➕ Plan an operation")
    planned_type = st.radio(
        "Type",
        options=list(TransactionType),
        index=list(TransactionType).index(state.selection.planned_type),
        format_func=lambda x: x.value.title(),
        horizontal=True,
    )
    if planned_type != state.selection.planned_type:
        session.synchronizer.set_planned_type(planned_type)
        st.rerun()

    accounts = state.visible_accounts
    categories = state.planned_categories()
    col1, col2 = st.columns(2)
    with col1:
        title = st.text_input("Title *")
        amount = st.text_input("Amount (minor units) *")
        due_date = st.date_input("Due date *", value=date.today())
    with col2:
        account_ids = [a.id for a in accounts]
        account_id = st.selectbox(
            "Account *",
            options=account_ids,
            index=account_ids.index(state.selection.planned_account_id)
            if state.selection.planned_account_id in account_ids else 0,
            format_func=lambda x: account_name(accounts, x),
        ) if account_ids else None
        category_ids = [c.id for c in categories]
        category_id = st.selectbox(
            "Category *",
            options=category_ids,
            index=category_ids.index(state.selection.planned_category_id)
            if state.selection.planned_category_id in category_ids else 0,
            format_func=lambda x: category_name(categories, x),
        ) if category_ids else None
        recurrence = st.selectbox(
            "Repeats",
            options=list(Recurrence),
            format_func=recurrence_label,
        )
    comment = st.text_input("Comment ")
    if account_id != state.selection.planned_account_id:
        session.synchronizer.select_planned_account(account_id)
    if category_id != state.selection.planned_category_id:
        session.synchronizer.select_planned_category(category_id)

    if st.button("✅ Save planned operation", type="primary"):
        run_async(session, session.create_planned_operation(
            title=title,
            amount=amount,
            due_date=due_date,
            comment=comment,
            recurrence=recurrence,
        ))
        st.rerun()

    show_status(session, Section.PLANNED)
    st.markdown("---")

    st.subheader("⏳ Pending")
    if not state.pending_operations:
        st.info("Nothing planned.")
    for op in state.pending_operations:
        col1, col2 = st.columns([4, 1])
        with col1:
            st.markdown(
                f"**{op.due_at.strftime('%d %b %Y')}** · {op.title} · "
                f"{format_money(op.amount_minor, op.currency)} · "
                f"{recurrence_label(op.recurrence)}"
            )
        with col2:
            if st.button("Done", key=f"complete-{op.id}"):
                run_async(session, session.complete_planned_operation(op.id))
                st.rerun()

    st.subheader("✅ Completed")
    for op in state.completed_operations:
        st.markdown(
            f"{op.completed_sort_time.strftime('%d %b %Y')} · {op.title} · "
            f"{format_money(op.amount_minor, op.currency)}"
        )


def render_categories_page(session: BudgetSession):
    """Render the category form and the active/archived lists."""
    state = session.state
    st.title("🏷️ Categories")

    editing = state.find_category(state.selection.editing_category_id)
    st.subheader("✏️ Edit category" if editing else "➕ New category")

    type_options = [t.value for t in CategoryType]
    parents = [c for c in state.active_categories if editing is None or c.id != editing.id]
    with st.form("category", clear_on_submit=editing is None):
        name = st.text_input("Name *", value=editing.name if editing else "")
        category_type = st.selectbox(
            "Type",
            options=type_options,
            index=type_options.index(editing.type.value) if editing else 1,
            format_func=lambda x: x.title(),
        )
        color = st.color_picker("Color", value=editing.color if editing and editing.color else "#0ea5e9")
        description = st.text_input("Description", value=editing.description if editing else "")
        parent_ids = [None] + [c.id for c in parents]
        parent_id = st.selectbox(
            "Parent",
            options=parent_ids,
            index=parent_ids.index(editing.parent_id) if editing and editing.parent_id in parent_ids else 0,
            format_func=lambda x: "No parent" if x is None else category_name(parents, x),
        )
        submitted = st.form_submit_button("✅ Save category", type="primary")

    if submitted:
        run_async(session, session.save_category(
            name=name,
            category_type=category_type,
            color=color,
            description=description,
            parent_id=parent_id,
        ))
        st.rerun()

    if editing and st.button("Cancel editing"):
        session.synchronizer.end_category_edit()
        st.rerun()

    show_status(session, Section.CATEGORIES)
    st.markdown("---")

    for category in state.active_categories:
        col1, col2, col3 = st.columns([4, 1, 1])
        with col1:
            label = f"**{category.name}** · {category.type.value}"
            if category.is_system:
                label += " · system"
            st.markdown(label)
        with col2:
            if st.button("Edit", key=f"edit-{category.id}"):
                session.synchronizer.begin_category_edit(category.id)
                st.rerun()
        with col3:
            if not category.is_system and st.button("Archive", key=f"archive-{category.id}"):
                run_async(session, session.set_category_archived(category.id, True))
                st.rerun()

    if state.archived_categories:
        with st.expander("🗄️ Archived"):
            for category in state.archived_categories:
                col1, col2 = st.columns([5, 1])
                with col1:
                    st.markdown(category.name)
                with col2:
                    if st.button("Restore", key=f"restore-{category.id}"):
                        run_async(session, session.set_category_archived(category.id, False))
                        st.rerun()


def render_accounts_page(session: BudgetSession):
    """Render accounts, the account form and family members."""
    state = session.state
    st.title("🏦 Accounts")

    for account in state.visible_accounts:
        st.markdown(
            f"**{account.name}** · {account.type.value} · "
            f"{format_money(account.balance_minor, account.currency)}"
            + (" · archived" if account.is_archived else "")
        )

    st.subheader("➕ New account")
    with st.form("account", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Name *")
            account_type = st.selectbox(
                "Type",
                options=[t.value for t in AccountType],
                format_func=lambda x: x.title(),
            )
        with col2:
            currency = st.text_input("Currency", value=state.family.currency_base if state.family else "")
            initial_balance = st.text_input("Initial balance (minor units)")
        shared = st.checkbox("Shared with the family", value=True)
        submitted = st.form_submit_button("✅ Create account", type="primary")

    if submitted:
        run_async(session, session.create_account(
            name=name,
            account_type=account_type,
            currency=currency,
            initial_balance=initial_balance,
            shared=shared,
        ))
        st.rerun()

    show_status(session, Section.ACCOUNTS)
    st.markdown("---")

    st.subheader("👨‍👩‍👧 Family members")
    show_status(session, Section.MEMBERS)
    for member in state.members:
        st.markdown(f"- **{member.name}** · {role_label(member.role)} · {member.email}")


def render_settings_page(session: BudgetSession):
    """Render display preferences, connection status and recent activity."""
    state = session.state
    st.title("⚙️ Settings")

    if state.settings is None:
        run_async(session, session.refresh_settings())

    display = state.display
    preferences = state.settings.user if state.settings else None
    family = state.settings.family if state.settings else None

    with st.form("settings"):
        col1, col2 = st.columns(2)
        with col1:
            theme = st.selectbox(
                "Theme",
                options=[t.value for t in Theme],
                index=[t.value for t in Theme].index(display.theme.value),
            )
            density = st.selectbox(
                "Density",
                options=[d.value for d in Density],
                index=[d.value for d in Density].index(display.density.value),
            )
            show_archived = st.checkbox("Show archived accounts", value=display.show_archived)
            show_totals = st.checkbox(
                "Show totals in family currency",
                value=display.show_totals_in_family_currency,
            )
        with col2:
            user_currency = st.text_input(
                "My currency",
                value=preferences.currency_default if preferences else "",
            )
            locale = st.text_input("Locale", value=preferences.locale if preferences else "")
            family_currency = st.text_input(
                "Family currency",
                value=family.currency_base if family else "",
            )
        submitted = st.form_submit_button("✅ Save settings", type="primary")

    if submitted:
        run_async(session, session.update_settings(
            theme=theme,
            density=density,
            show_archived=show_archived,
            show_totals_in_family_currency=show_totals,
            user_currency=user_currency,
            locale=locale,
            family_currency=family_currency,
        ))
        st.rerun()

    show_status(session, Section.SETTINGS)
    st.markdown("---")

    st.markdown("### Connection Status")
    status = validate_all_settings()
    for name, key in [("Budget backend", "api"), ("Application", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            st.error(f"❌ {name} - {status.get(f'{key}_error', 'Not configured')}")

    with st.expander("📜 Recent activity"):
        for event in session.audit_logger.recent_events(limit=30):
            st.markdown(
                f"`{event.timestamp.strftime('%H:%M:%S')}` "
                f"{event.event_type.value} · {event.description}"
            )


if __name__ == "__main__":
    main()
