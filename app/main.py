"""
Streamlit Frontend for WealthDash

A single-user dashboard for money spread across HK banks, brokers and
wallets in several currencies.

DESIGN PRINCIPLES:
1. Totals are always derived, never typed in
2. Explicit confirmation before any import touches the ledger
3. Clear error messages in simple language
4. Destructive actions need a second, deliberate click

The UI enforces the human-in-the-loop principle:
- User sees what was extracted
- User confirms or cancels
- Nothing is imported without explicit "Confirm" action
"""

import asyncio

import pandas as pd
import streamlit as st

from wealthdash.audit import configure_logging
from wealthdash.config import get_settings, validate_all_settings
from wealthdash.ledger import (
    LedgerError,
    asset_distribution,
    compute_totals,
    spending_by_category,
    total_spent,
)
from wealthdash.models import AccountType, Currency, DISPLAY_SYMBOLS, ImportState
from wealthdash.orchestrator import AppComponents, confirm_and_analyze, create_app_components
from wealthdash.services.report import REPORT_FILENAME, REPORT_MIME_TYPE, export_workbook


# Page configuration
st.set_page_config(
    page_title="WealthDash",
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
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    configure_logging(get_settings().app.log_level)
    try:
        components = create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize local storage: {e}")
        components = create_app_components(use_storage=False)

    # Startup auto refresh; a failure just leaves the defaults in place
    run_async(components.rate_flow.refresh_if_sparse())
    return components


def money(symbol: str, value) -> str:
    return f"{symbol}{value:,.2f}"


def main():
    """Main application entry point."""
    components = get_components()

    st.sidebar.title("💰 WealthDash")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🏦 Assets", "🧾 Expenses", "📤 Import", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Upload a statement or asset spreadsheet
        2. Review what was found
        3. Confirm to add it to your dashboard
        """
    )
    st.sidebar.caption(
        f"Last updated: {components.store.last_updated:%Y-%m-%d %H:%M} UTC"
    )

    if page == "🏦 Assets":
        render_assets_page(components)
    elif page == "🧾 Expenses":
        render_expenses_page(components)
    elif page == "📤 Import":
        render_import_page(components)
    elif page == "⚙️ Settings":
        render_settings_page(components)


def render_assets_page(components: AppComponents):
    """Render totals, the account list and quick add."""
    store = components.store
    st.title("🏦 Assets")

    if "base_currency" not in st.session_state:
        st.session_state.base_currency = get_settings().app.default_base_currency

    currencies = [c.value for c in Currency]
    base = st.selectbox(
        "Display currency",
        options=currencies,
        index=currencies.index(st.session_state.base_currency)
        if st.session_state.base_currency in currencies else 0,
    )
    st.session_state.base_currency = base

    totals = compute_totals(store.accounts, store.exchange_rates, base)
    symbol = totals.display_symbol

    if totals.fallback_currencies:
        missing = ", ".join(c.value for c in totals.fallback_currencies)
        st.warning(
            f"⚠️ No exchange rate for {missing}; those balances are counted 1:1. "
            "Refresh rates in Settings."
        )

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Net Worth", money(symbol, totals.net_worth))
    col2.metric("Cash", money(symbol, totals.cash))
    col3.metric("Investments", money(symbol, totals.investments))
    col4.metric("Liabilities", money(symbol, totals.liabilities))
    st.caption(
        f"HKD cash {money(symbol, totals.anchor_cash)} · "
        f"Foreign cash {money(symbol, totals.foreign_cash)}"
    )

    if store.accounts:
        st.download_button(
            "📥 Download Excel Report",
            data=export_workbook(store.accounts, store.exchange_rates, base),
            file_name=REPORT_FILENAME,
            mime=REPORT_MIME_TYPE,
        )

    slices = asset_distribution(store.accounts, store.exchange_rates, base)
    if slices:
        st.markdown("### Distribution")
        chart = pd.DataFrame(
            {"Account": [s.name for s in slices], "Value": [float(s.value) for s in slices]}
        ).set_index("Account")
        st.bar_chart(chart)

    st.markdown("---")
    st.markdown("### Accounts")

    if not store.accounts:
        st.info("No accounts yet. Add one below or import a statement.")

    for account in store.accounts:
        own_symbol = DISPLAY_SYMBOLS.get(account.currency, account.currency.value)
        with st.expander(
            f"{account.name} · {money(own_symbol, account.balance)} ({account.type.value})"
        ):
            with st.form(f"edit-{account.id}"):
                name = st.text_input("Name", value=account.name)
                balance = st.text_input("Balance", value=f"{account.balance}")
                currency = st.selectbox(
                    "Currency", currencies, index=currencies.index(account.currency.value)
                )
                types = [t.value for t in AccountType]
                account_type = st.selectbox(
                    "Type", types, index=types.index(account.type.value)
                )
                col1, col2 = st.columns(2)
                save = col1.form_submit_button("💾 Save")
                delete = col2.form_submit_button("🗑️ Delete")

            if save:
                try:
                    store.update_account(account.id, {
                        "name": name,
                        "balance": balance,
                        "currency": currency,
                        "type": account_type,
                    })
                    st.rerun()
                except LedgerError as e:
                    st.error(str(e))
            if delete:
                store.delete_account(account.id)
                st.rerun()

    st.markdown("---")
    st.markdown("### Quick Add")
    with st.form("quick-add", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Account name *", placeholder="e.g. HSBC Savings")
            balance = st.text_input("Balance *", placeholder="e.g. 12,345.67")
        with col2:
            currency = st.selectbox("Currency", currencies)
            account_type = st.selectbox("Type", [t.value for t in AccountType])
        submitted = st.form_submit_button("➕ Add Account", type="primary")

    if submitted:
        try:
            store.add_account({
                "name": name,
                "balance": balance,
                "currency": currency,
                "type": account_type,
            })
            st.success(f"Added {name}")
            st.rerun()
        except LedgerError as e:
            st.error(str(e))


def render_expenses_page(components: AppComponents):
    """Render spending breakdown, the transaction list and insights."""
    store = components.store
    st.title("🧾 Expenses")

    transactions = store.transactions
    if not transactions:
        st.info("No transactions yet. Import a bank statement to see your spending.")

    breakdown = spending_by_category(transactions)
    if breakdown:
        st.markdown(
            f'<div class="big-number">HK${total_spent(transactions):,.2f}</div>'
            "<p>total spent</p>",
            unsafe_allow_html=True,
        )
        chart = pd.DataFrame(
            {
                "Category": [c.category.value for c in breakdown],
                "Spent": [float(c.value) for c in breakdown],
            }
        ).set_index("Category")
        st.bar_chart(chart)

    if transactions:
        st.dataframe(
            pd.DataFrame([
                {
                    "Date": t.date,
                    "Description": t.description,
                    "Category": t.category.value,
                    "Amount": float(t.amount),
                }
                for t in transactions
            ]),
            use_container_width=True,
            hide_index=True,
        )

        confirm_clear = st.checkbox("I want to delete every transaction")
        if st.button("🗑️ Clear Transactions", disabled=not confirm_clear):
            count = run_async(components.maintenance_flow.clear_transactions())
            st.success(f"Removed {count} transactions.")
            st.rerun()

    st.markdown("---")
    st.markdown("### 🤖 AI Insight")
    if st.button("Analyze my portfolio and spending", type="primary"):
        with st.spinner("Asking the advisor..."):
            st.session_state.last_insight = run_async(components.insight_flow.analyze(store))

    # Also filled automatically after every confirmed import
    report = st.session_state.get("last_insight")
    if report is not None:
        if report.portfolio is None and report.spending is None:
            st.info("Add some accounts or transactions first.")
        if report.portfolio:
            st.markdown("**Portfolio**")
            st.markdown(report.portfolio)
        if report.spending:
            st.markdown("**Spending**")
            st.markdown(report.spending)


def render_import_page(components: AppComponents):
    """Render the statement import flow."""
    flow = components.import_flow
    st.title("📤 Import")
    st.markdown(
        "Upload a bank statement (PDF or photo) or an asset spreadsheet "
        "(.xlsx or .csv)."
    )

    if "import_session" not in st.session_state:
        st.session_state.import_session = flow.new_session()
    session = st.session_state.import_session

    # Step 1: Upload
    if session.state == ImportState.IDLE:
        uploaded_file = st.file_uploader(
            "Choose a file",
            type=get_settings().app.supported_formats_list,
        )
        if uploaded_file and st.button("🔍 Analyze File", type="primary"):
            with st.spinner("Reading your file... Please wait."):
                run_async(flow.run(
                    session,
                    uploaded_file.getvalue(),
                    filename=uploaded_file.name,
                    mime_type=uploaded_file.type,
                ))
            st.rerun()

    # Step 2a: Failure
    if session.state == ImportState.FAILED:
        st.markdown(f"""
        <div class="error-box">
            <h4>❌ Import Failed</h4>
            <p>{session.error_message}</p>
        </div>
        """, unsafe_allow_html=True)
        if st.button("Dismiss"):
            flow.dismiss(session)
            st.rerun()

    # Step 2b: Review and Confirm
    if session.state == ImportState.PREVIEWING and session.preview:
        preview = session.preview
        st.markdown("---")
        st.subheader(f"📋 Review: {preview.filename}")

        box = "warning-box" if preview.warnings else "success-box"
        st.markdown(f"""
        <div class="{box}">
            <p>{session.status_message}</p>
        </div>
        """, unsafe_allow_html=True)

        if preview.accounts:
            st.markdown(f"**Accounts ({len(preview.accounts)})**")
            st.dataframe(
                pd.DataFrame([
                    {
                        "Name": a.name,
                        "Balance": float(a.balance),
                        "Currency": a.currency.value,
                        "Type": a.type.value,
                    }
                    for a in preview.accounts
                ]),
                use_container_width=True,
                hide_index=True,
            )
        if preview.transactions:
            st.markdown(f"**Transactions ({len(preview.transactions)})**")
            st.dataframe(
                pd.DataFrame([
                    {
                        "Date": t.date,
                        "Description": t.description,
                        "Category": t.category.value,
                        "Amount": float(t.amount),
                    }
                    for t in preview.transactions
                ]),
                use_container_width=True,
                hide_index=True,
            )
        if preview.exchange_rates:
            rates = ", ".join(f"{k} {v:.4f}" for k, v in preview.exchange_rates.items())
            st.caption(f"Exchange rate found in file: {rates}")

        col1, col2 = st.columns(2)
        with col1:
            if st.button("✅ Confirm Import", type="primary"):
                with st.spinner("Saving and refreshing AI insight..."):
                    summary, report = run_async(confirm_and_analyze(components, session))
                st.session_state.last_import = summary
                st.session_state.last_insight = report
                st.rerun()
        with col2:
            if st.button("❌ Cancel"):
                run_async(flow.cancel(session))
                st.rerun()

    # Step 3: Done
    if session.state in (ImportState.CONFIRMED, ImportState.CANCELLED):
        if session.state == ImportState.CONFIRMED:
            summary = st.session_state.get("last_import")
            if summary:
                st.markdown(f"""
                <div class="success-box">
                    <h3>✅ Import Complete</h3>
                    <p><strong>Accounts added:</strong> {summary.accounts_added}</p>
                    <p><strong>Accounts updated:</strong> {summary.accounts_updated}</p>
                    <p><strong>Transactions added:</strong> {summary.transactions_added}</p>
                </div>
                """, unsafe_allow_html=True)
        else:
            st.info("Import cancelled. Nothing was changed.")

        if st.button("📤 Import Another File"):
            st.session_state.import_session = flow.new_session()
            st.session_state.last_import = None
            st.rerun()


def render_settings_page(components: AppComponents):
    """Render service status, rates and the reset action."""
    store = components.store
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")
    status = validate_all_settings()
    services = [
        ("Gemini (AI extraction & insight)", "gemini"),
        ("Local storage", "storage"),
        ("Application", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Exchange Rates")
    st.caption("HKD per 1 unit of each currency")
    st.dataframe(
        pd.DataFrame(
            [{"Currency": code, "Rate": float(rate)} for code, rate in store.exchange_rates.items()]
        ),
        hide_index=True,
    )
    if st.button("🔄 Refresh Rates"):
        with st.spinner("Fetching current rates..."):
            updated = run_async(components.rate_flow.refresh())
        if updated:
            st.success(f"Updated: {', '.join(updated)}")
        else:
            st.warning("Could not fetch rates. The current table was kept.")

    st.markdown("---")
    st.markdown("### Danger Zone")
    confirm_reset = st.checkbox("I understand this deletes all accounts, transactions and rates")
    if st.button("⚠️ Reset Everything", disabled=not confirm_reset):
        run_async(components.maintenance_flow.reset_all())
        st.session_state.pop("import_session", None)
        st.session_state.pop("last_insight", None)
        st.success("All data has been cleared.")
        st.rerun()

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
