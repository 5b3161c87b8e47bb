"""
Streamlit Frontend for FinanceFlow

The user interface for day-to-day money tracking: a dashboard, a
transaction ledger, capital divisions and free-form spreadsheets.

DESIGN PRINCIPLES:
1. Every change is saved on this device immediately
2. Sync problems are shown, never thrown at the user
3. Derived numbers always come from the controller, not the page

Run with: streamlit run app/main.py
"""

import asyncio
from datetime import date, datetime

import streamlit as st

from financeflow.analytics import Calculator
from financeflow.config import validate_all_settings
from financeflow.models import (
    CapitalDivision,
    ColumnType,
    RowSchemaError,
    SpreadsheetColumn,
    SpreadsheetType,
    SyncResult,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
)
from financeflow.orchestrator import AppComponents, create_app_components
from financeflow.services import NotFoundError


# Page configuration
st.set_page_config(
    page_title="FinanceFlow",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One loop for the whole process; the HTTP client and controller live on it."""
    return asyncio.new_event_loop()


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = get_event_loop()
    asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    try:
        components = create_app_components(use_remote=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        components = create_app_components(use_remote=False)
    run_async(components.controller.load())
    return components


def show_sync_result(result: SyncResult, success_message: str) -> None:
    """Tell the user where a change ended up."""
    if result.is_synced:
        st.success(f"{success_message} (synced)")
    elif result.is_degraded:
        st.warning(
            f"{success_message} on this device only. Sync failed: {result.error_message}. "
            "Use 'Retry pending sync' in the sidebar."
        )
    else:
        st.success(f"{success_message} (saved on this device)")


def main():
    """Main application entry point."""
    components = get_components()

    # Sidebar navigation
    st.sidebar.title("💰 FinanceFlow")
    render_session_sidebar(components)
    render_calculator()
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "💸 Transactions", "🧩 Capital Divisions", "📑 Spreadsheets", "⚙️ Settings"],
        index=0,
    )

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(components)
    elif page == "💸 Transactions":
        render_transactions_page(components)
    elif page == "🧩 Capital Divisions":
        render_divisions_page(components)
    elif page == "📑 Spreadsheets":
        render_spreadsheets_page(components)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_session_sidebar(components: AppComponents):
    """Sign in/out and the retry button."""
    session = components.session
    controller = components.controller

    if session.authenticated:
        st.sidebar.markdown(f"Signed in as **{session.user_id}**")
        if st.sidebar.button("Sign out"):
            run_async(session.sign_out())
            st.rerun()
    else:
        user_id = st.sidebar.text_input("User ID", placeholder="Sign in to sync")
        if st.sidebar.button("Sign in") and user_id.strip():
            run_async(session.sign_in(user_id.strip()))
            st.rerun()
        if components.remote_store is None:
            st.sidebar.caption("Remote sync is not configured; data stays on this device.")

    pending = controller.pending_sync_count
    if pending:
        st.sidebar.warning(f"{pending} change(s) waiting to sync")
        if st.sidebar.button("🔁 Retry pending sync"):
            report = run_async(controller.retry_pending())
            st.sidebar.info(
                f"Synced {len(report.replayed)}, still failing {len(report.failed)}, "
                f"dropped {len(report.dropped)}"
            )


CALCULATOR_KEYS = [
    ["C", "÷", "×", "-"],
    ["7", "8", "9", "+"],
    ["4", "5", "6", "="],
    ["1", "2", "3", "0"],
    ["."],
]


def press_calculator_key(key: str) -> None:
    calculator: Calculator = st.session_state.calculator
    if key == "C":
        calculator.clear()
    elif key == "=":
        calculator.equals()
    elif key == ".":
        calculator.input_decimal()
    elif key.isdigit():
        calculator.input_digit(key)
    else:
        calculator.input_operation(key)


def render_calculator():
    """Quick calculator in the sidebar."""
    if "calculator" not in st.session_state:
        st.session_state.calculator = Calculator()

    with st.sidebar.expander("🧮 Calculator"):
        st.code(st.session_state.calculator.display, language=None)
        for row in CALCULATOR_KEYS:
            for col, key in zip(st.columns(4), row):
                # Callbacks run before the rerun, so the display above is current
                col.button(key, key=f"calc_{key}", on_click=press_calculator_key, args=(key,),
                           use_container_width=True)


def render_dashboard_page(components: AppComponents):
    """Headline numbers, the monthly series and recent activity."""
    controller = components.controller
    st.title("📊 Dashboard")

    data = controller.dashboard()
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Income (this month)", f"{data.total_income:,.2f}")
    col2.metric("Expenses (this month)", f"{data.total_expenses:,.2f}")
    col3.metric("Balance", f"{data.balance:,.2f}")
    col4.metric("Pending bills", f"{data.pending_bills:,.2f}", delta=f"{data.overdue_count} overdue",
                delta_color="inverse")

    st.markdown("### Monthly overview")
    series = controller.monthly_series()
    st.bar_chart(
        {
            "Income": [m.income for m in series],
            "Expenses": [m.expenses for m in series],
        }
    )
    st.table(
        [
            {"Month": f"{m.month} {m.year}", "Income": m.income, "Expenses": m.expenses, "Balance": m.balance}
            for m in series
        ]
    )

    st.markdown("### Recent activity")
    recent = controller.recent_activity()
    if not recent:
        st.info("No transactions yet.")
    for t in recent:
        sign = "+" if t.is_income else "-"
        st.markdown(f"{t.date.isoformat()} · **{t.description or t.category or t.type.value}** · {sign}{t.amount:,.2f}")


def render_transactions_page(components: AppComponents):
    """Add transactions and list income/expenses."""
    controller = components.controller
    st.title("💸 Transactions")

    with st.form("add_transaction", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            kind = st.selectbox(
                "Type",
                options=list(TransactionType),
                format_func=lambda x: x.value.title(),
            )
            amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
            description = st.text_input("Description")
            category = st.text_input("Category")
        with col2:
            tx_date = st.date_input("Date", value=date.today())
            is_recurring = st.checkbox("Recurring")
            due_date = st.date_input("Due date (expenses only)", value=None)
            status = st.selectbox(
                "Status (expenses only)",
                options=[None] + list(TransactionStatus),
                format_func=lambda x: "-" if x is None else x.value.title(),
            )

        if st.form_submit_button("Add transaction", type="primary"):
            is_expense = kind == TransactionType.EXPENSE
            try:
                draft = TransactionDraft(
                    type=kind,
                    amount=amount,
                    description=description,
                    category=category,
                    date=tx_date,
                    is_recurring=is_recurring,
                    due_date=due_date if is_expense else None,
                    status=status if is_expense else None,
                )
            except ValueError as e:
                st.error(f"Invalid transaction: {e}")
            else:
                show_sync_result(run_async(controller.add_transaction(draft)), "Transaction added")

    income_tab, expense_tab = st.tabs(["Income", "Expenses"])
    with income_tab:
        rows = [t.model_dump(mode="json", exclude={"due_date", "status"}) for t in controller.income_transactions()]
        if rows:
            st.dataframe(rows, use_container_width=True)
        else:
            st.info("No income yet.")
    with expense_tab:
        rows = [t.model_dump(mode="json") for t in controller.expense_transactions()]
        if rows:
            st.dataframe(rows, use_container_width=True)
        else:
            st.info("No expenses yet.")


def render_divisions_page(components: AppComponents):
    """Edit the capital division set."""
    controller = components.controller
    st.title("🧩 Capital Divisions")

    allocations = controller.division_allocations()
    edited = st.data_editor(
        [
            {"id": d.id, "name": d.name, "percentage": d.percentage, "color": d.color, "amount": d.amount}
            for d in allocations
        ],
        num_rows="dynamic",
        disabled=["id", "amount"],
        use_container_width=True,
        key="divisions_editor",
    )

    total = sum(float(row.get("percentage") or 0) for row in edited)
    if abs(total - 100) > 1e-9:
        st.warning(f"Percentages add up to {total:g}%, not 100%.")

    if st.button("💾 Save divisions", type="primary"):
        try:
            divisions = [
                CapitalDivision(
                    id=row.get("id") or f"new-{index}-{datetime.now().timestamp()}",
                    name=row.get("name") or "",
                    percentage=float(row.get("percentage") or 0),
                    color=row.get("color") or "#10B981",
                )
                for index, row in enumerate(edited)
            ]
        except ValueError as e:
            st.error(f"Invalid division: {e}")
        else:
            show_sync_result(run_async(controller.update_divisions(divisions)), "Divisions saved")


def render_spreadsheets_page(components: AppComponents):
    """List, create and edit spreadsheets."""
    controller = components.controller
    st.title("📑 Spreadsheets")

    totals = controller.spreadsheet_totals()
    col1, col2, col3 = st.columns(3)
    col1.metric("Spreadsheet income", f"{totals.total_income:,.2f}")
    col2.metric("Spreadsheet expenses", f"{totals.total_expenses:,.2f}")
    col3.metric("Investment returns", f"{totals.total_investment_returns:,.2f}")

    with st.expander("➕ New spreadsheet"):
        new_type = st.selectbox(
            "Type",
            options=list(SpreadsheetType),
            format_func=lambda x: x.value.title(),
            key="new_spreadsheet_type",
        )
        new_name = st.text_input("Name (optional)", key="new_spreadsheet_name")
        if st.button("Create"):
            result = run_async(controller.create_spreadsheet(new_type, name=new_name or None))
            show_sync_result(result, "Spreadsheet created")

    spreadsheets = controller.spreadsheets
    if not spreadsheets:
        st.info("No spreadsheets yet.")
        return

    selected = st.selectbox(
        "Spreadsheet",
        options=[s.id for s in spreadsheets],
        format_func=lambda sid: next(s.name for s in spreadsheets if s.id == sid),
    )
    try:
        spreadsheet = controller.get_spreadsheet(selected)
    except NotFoundError:
        st.rerun()
        return

    col1, col2 = st.columns([3, 1])
    with col1:
        name = st.text_input("Rename", value=spreadsheet.name)
        if name != spreadsheet.name and st.button("Save name"):
            show_sync_result(run_async(controller.rename_spreadsheet(spreadsheet.id, name)), "Renamed")
    with col2:
        if st.button("🗑️ Delete spreadsheet"):
            show_sync_result(run_async(controller.delete_spreadsheet(spreadsheet.id)), "Deleted")
            st.rerun()

    with st.expander("Columns"):
        edited_columns = st.data_editor(
            [
                {"key": c.key, "label": c.label, "type": c.type.value, "options": ", ".join(c.options or [])}
                for c in spreadsheet.columns
            ],
            num_rows="dynamic",
            column_config={
                "type": st.column_config.SelectboxColumn(options=[t.value for t in ColumnType]),
            },
            key=f"columns_{spreadsheet.id}",
        )
        if st.button("Save columns"):
            try:
                columns = [
                    SpreadsheetColumn(
                        key=row["key"],
                        label=row.get("label") or row["key"],
                        type=row.get("type") or ColumnType.TEXT,
                        options=[o.strip() for o in row["options"].split(",") if o.strip()]
                        if row.get("options") else None,
                    )
                    for row in edited_columns
                    if row.get("key")
                ]
                result = run_async(controller.set_spreadsheet_columns(spreadsheet.id, columns))
            except ValueError as e:
                st.error(f"Invalid columns: {e}")
            else:
                show_sync_result(result, "Columns saved")

    st.markdown("### Rows")
    for row in spreadsheet.rows:
        cols = st.columns(len(spreadsheet.columns) + 1)
        for col, column in zip(cols, spreadsheet.columns):
            col.write(row.get(column.key))
        if cols[-1].button("Delete", key=f"delete_{row.id}"):
            show_sync_result(run_async(controller.delete_spreadsheet_row(spreadsheet.id, row.id)), "Row deleted")
            st.rerun()

    with st.form(f"add_row_{spreadsheet.id}", clear_on_submit=True):
        values = {}
        for column in spreadsheet.columns:
            if column.type == ColumnType.SELECT and column.options:
                values[column.key] = st.selectbox(column.label, options=column.options)
            elif column.type == ColumnType.DATE:
                picked = st.date_input(column.label, value=None)
                values[column.key] = picked.isoformat() if picked else ""
            else:
                values[column.key] = st.text_input(column.label)
        if st.form_submit_button("Add row"):
            try:
                result = run_async(controller.add_spreadsheet_row(spreadsheet.id, values))
            except RowSchemaError as e:
                st.error(str(e))
            else:
                show_sync_result(result, "Row added")


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Remote sync)", "google_sheets"),
        ("Local storage", "local_storage"),
        ("Legacy divisions service", "legacy_api"),
        ("Sync", "sync"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. Variables are grouped by prefix: "
        "`GOOGLE_SHEETS_`, `LOCAL_STORAGE_`, `LEGACY_API_` and `SYNC_`, plus `LOG_LEVEL`."
    )


if __name__ == "__main__":
    main()
