"""
Streamlit Frontend for LitFunds

The pages users interact with daily: sign in, record income and
expenses, and see where the money went.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. Pages never compute totals themselves - every figure comes from
   the flows, which use the shared aggregation module
"""

import asyncio
from datetime import date

import pandas as pd
import plotly.express as px
import streamlit as st

from litfunds.analytics import format_currency, format_signed
from litfunds.audit import create_correlation_id
from litfunds.config import get_settings, validate_all_settings
from litfunds.models import (
    DEFAULT_CATEGORIES,
    Currency,
    Period,
    Summary,
    Transaction,
    TransactionInput,
    TransactionType,
)
from litfunds.orchestrator import (
    AnalyticsFlow,
    AuthFlow,
    ProfileFlow,
    TransactionFlow,
    create_app_components,
)
from litfunds.services import AuthError, NotFoundError, PermissionDeniedError


# Page configuration
st.set_page_config(
    page_title="LitFunds",
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
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)

PAGES = ["🏠 Home", "➕ Add Transaction", "📋 Transactions", "📊 Analytics", "👤 Profile", "⚙️ Settings"]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def category_label(category: str) -> str:
    return DEFAULT_CATEGORIES.get(category, category.title())


def current_currency() -> Currency:
    return st.session_state.get("currency", Currency(get_settings().app.default_currency))


def main():
    """Main application entry point."""
    components = get_components()

    if "user_id" not in st.session_state:
        render_auth_page(components.auth_flow)
        return

    # Load the profile once per session for the greeting and currency
    if "currency" not in st.session_state:
        profile = run_async(components.profile_flow.get_profile(
            st.session_state.user_id,
            st.session_state.email,
        ))
        st.session_state.currency = profile.currency
        st.session_state.display_name = profile.greeting_name

    # Sidebar navigation
    st.sidebar.title("💰 LitFunds")
    st.sidebar.markdown(f"Signed in as **{st.session_state.get('display_name') or st.session_state.email}**")
    st.sidebar.markdown("---")

    if "page" not in st.session_state:
        st.session_state.page = PAGES[0]
    # Set by buttons on other pages; applied before the radio is drawn
    if "nav_target" in st.session_state:
        st.session_state.page = st.session_state.pop("nav_target")

    page = st.sidebar.radio(
        "Navigate to:",
        PAGES,
        key="page",
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🚪 Sign Out"):
        run_async(components.auth_flow.sign_out(st.session_state.user_id))
        for key in ("user_id", "email", "currency", "display_name", "selected_transaction"):
            st.session_state.pop(key, None)
        st.rerun()

    # Route to appropriate page
    if page == "🏠 Home":
        render_home_page(components.analytics_flow, components.transaction_flow)
    elif page == "➕ Add Transaction":
        render_add_transaction_page(components.transaction_flow)
    elif page == "📋 Transactions":
        render_transactions_page(components.transaction_flow)
    elif page == "📊 Analytics":
        render_analytics_page(components.analytics_flow)
    elif page == "👤 Profile":
        render_profile_page(components.profile_flow)
    elif page == "⚙️ Settings":
        render_settings_page(components.sheets_client is not None)


def render_auth_page(auth_flow: AuthFlow):
    """Sign in / sign up gate."""
    st.title("💰 LitFunds")
    st.markdown("Track your income and expenses in one place.")

    sign_in_tab, sign_up_tab = st.tabs(["Sign In", "Create Account"])

    with sign_in_tab:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign In", type="primary")

        if submitted:
            try:
                account = run_async(auth_flow.sign_in(email, password))
                st.session_state.user_id = account.user_id
                st.session_state.email = account.email
                st.rerun()
            except AuthError as e:
                st.error(str(e))
            except Exception as e:
                st.error(f"Sign in failed: {e}")

    with sign_up_tab:
        with st.form("sign_up"):
            display_name = st.text_input("Name (optional)")
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input("Password", type="password", key="sign_up_password")
            confirm = st.text_input("Confirm Password", type="password")
            submitted = st.form_submit_button("Create Account", type="primary")

        if submitted:
            try:
                account = run_async(auth_flow.sign_up(email, password, confirm, display_name))
                st.session_state.user_id = account.user_id
                st.session_state.email = account.email
                st.rerun()
            except AuthError as e:
                st.error(str(e))
            except Exception as e:
                st.error(f"Could not create account: {e}")


def render_status_box(summary: Summary):
    status = summary.status
    st.markdown(f"""
    <div class="{status.style}">
        <h4>{status.tier.value.title()}</h4>
        <p>{status.message}</p>
    </div>
    """, unsafe_allow_html=True)


def render_transaction_row(transaction: Transaction, currency: Currency, key_prefix: str):
    col1, col2, col3 = st.columns([4, 2, 1])
    with col1:
        st.markdown(
            f"**{transaction.description or category_label(transaction.category)}**  \n"
            f"{category_label(transaction.category)} · {transaction.date:%d %b %Y}"
        )
    with col2:
        color = "green" if transaction.is_income else "red"
        st.markdown(f":{color}[{format_signed(transaction.amount, currency)}]")
    with col3:
        if st.button("Open", key=f"{key_prefix}_{transaction.id}"):
            st.session_state.selected_transaction = transaction.id
            st.session_state.nav_target = "📋 Transactions"
            st.rerun()


def render_home_page(analytics_flow: AnalyticsFlow, transaction_flow: TransactionFlow):
    """Monthly summary, recent transactions, categories and budgets."""
    user_id = st.session_state.user_id
    currency = current_currency()

    st.title(f"👋 Hello, {st.session_state.get('display_name') or 'there'}")

    try:
        summary = run_async(analytics_flow.monthly_summary(user_id))
        recent = run_async(transaction_flow.list_recent(user_id))
    except Exception as e:
        st.error(f"Could not load your data: {e}")
        return

    st.subheader(f"This Month ({summary.date_range.label()})")
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", format_currency(summary.totals.income, currency))
    col2.metric("Expenses", format_currency(summary.totals.expense, currency))
    col3.metric("Balance", format_signed(summary.totals.balance, currency))
    render_status_box(summary)

    left, right = st.columns(2)

    with left:
        st.markdown("### Recent Transactions")
        if not recent:
            st.info("No transactions yet. Use 'Add Transaction' to record your first one.")
        for transaction in recent:
            render_transaction_row(transaction, currency, key_prefix="recent")

    with right:
        st.markdown("### Categories")
        if not summary.ranked_categories:
            st.caption("No spending this month.")
        for entry in summary.ranked_categories:
            st.markdown(f"{category_label(entry.category)}: **{format_currency(entry.amount, currency)}**")

        st.markdown("### Budget Overview")
        for usage in summary.budgets:
            st.markdown(
                f"{category_label(usage.category)}: "
                f"{format_currency(usage.spent, currency)} of {format_currency(usage.limit, currency)}"
            )
            st.progress(usage.percent / 100)
            if usage.over_budget:
                st.caption(f"⚠️ Over budget by {format_currency(-usage.remaining, currency)}")


def render_transaction_form(form_key: str, initial: TransactionInput) -> tuple[bool, TransactionInput]:
    """Shared new/edit form. Returns (submitted, values)."""
    categories = list(DEFAULT_CATEGORIES)
    if initial.category not in categories:
        categories.append(initial.category)

    with st.form(form_key):
        col1, col2 = st.columns(2)
        with col1:
            transaction_type = st.radio(
                "Type",
                options=[t.value for t in TransactionType],
                index=[t.value for t in TransactionType].index(initial.type),
                format_func=str.title,
                horizontal=True,
            )
            amount = st.text_input(
                f"Amount ({current_currency().symbol}) *",
                value=initial.amount,
                placeholder="0.00",
            )
            category = st.selectbox(
                "Category *",
                options=categories,
                index=categories.index(initial.category),
                format_func=category_label,
            )
        with col2:
            transaction_date = st.date_input(
                "Date *",
                value=initial.transaction_date or date.today(),
            )
            description = st.text_area(
                "Description",
                value=initial.description,
                placeholder="What was this for?",
            )
        submitted = st.form_submit_button("💾 Save", type="primary")

    return submitted, TransactionInput(
        amount=amount,
        description=description,
        category=category,
        type=transaction_type,
        transaction_date=transaction_date,
    )


def render_add_transaction_page(transaction_flow: TransactionFlow):
    """Record a new income or expense."""
    st.title("➕ Add Transaction")

    submitted, form = render_transaction_form("new_transaction", TransactionInput())
    if not submitted:
        return

    try:
        transaction, result = run_async(transaction_flow.create_transaction(
            form,
            st.session_state.user_id,
            correlation_id=create_correlation_id(),
        ))
    except Exception as e:
        st.error(f"Failed to save: {e}")
        return

    message = transaction_flow.validator.get_user_friendly_summary(result)
    if transaction is None:
        st.markdown(f"""
        <div class="error-box">
            <h4>❌ Not Saved</h4>
            <p>{message}</p>
        </div>
        """, unsafe_allow_html=True)
        return

    currency = current_currency()
    st.markdown(f"""
    <div class="success-box">
        <h3>✅ Transaction Saved!</h3>
        <p><strong>Amount:</strong> {format_signed(transaction.amount, currency)}</p>
        <p><strong>Category:</strong> {category_label(transaction.category)}</p>
        <p><strong>Date:</strong> {transaction.date.strftime('%d %B %Y')}</p>
    </div>
    """, unsafe_allow_html=True)
    if result.warnings:
        st.warning(message)


def render_transaction_details(transaction_flow: TransactionFlow, transaction_id: str):
    """View, edit or delete one transaction."""
    user_id = st.session_state.user_id
    currency = current_currency()

    if st.button("← Back to list"):
        st.session_state.pop("selected_transaction", None)
        st.rerun()

    try:
        transaction = run_async(transaction_flow.get_transaction(transaction_id, user_id))
    except PermissionDeniedError:
        st.error("You don't have access to this transaction.")
        return
    except Exception as e:
        st.error(f"Could not load transaction: {e}")
        return

    if transaction is None:
        st.warning("This transaction no longer exists.")
        return

    st.markdown(f"""
    <div class="{'success-box' if transaction.is_income else 'info-box'}">
        <p class="big-number">{format_signed(transaction.amount, currency)}</p>
        <p><strong>{transaction.description or 'No description'}</strong></p>
        <p>{category_label(transaction.category)} · {transaction.type.value.title()} · {transaction.date:%d %B %Y}</p>
    </div>
    """, unsafe_allow_html=True)

    with st.expander("✏️ Edit"):
        submitted, form = render_transaction_form(
            f"edit_{transaction.id}",
            TransactionInput.from_transaction(transaction),
        )
        if submitted:
            try:
                updated, result = run_async(transaction_flow.update_transaction(
                    transaction.id,
                    form,
                    user_id,
                    correlation_id=create_correlation_id(),
                ))
            except (NotFoundError, PermissionDeniedError) as e:
                st.error(str(e))
            except Exception as e:
                st.error(f"Failed to update: {e}")
            else:
                if updated is None:
                    st.error(transaction_flow.validator.get_user_friendly_summary(result))
                else:
                    st.success("Transaction updated")
                    st.rerun()

    confirm = st.checkbox("I want to delete this transaction")
    if st.button("🗑️ Delete", disabled=not confirm):
        try:
            run_async(transaction_flow.delete_transaction(transaction.id, user_id))
        except Exception as e:
            st.error(f"Failed to delete: {e}")
        else:
            st.session_state.pop("selected_transaction", None)
            st.success("Transaction deleted")
            st.rerun()


def render_transactions_page(transaction_flow: TransactionFlow):
    """All transactions, or one transaction's details."""
    st.title("📋 Transactions")

    selected = st.session_state.get("selected_transaction")
    if selected:
        render_transaction_details(transaction_flow, selected)
        return

    try:
        transactions = run_async(transaction_flow.load_transactions(st.session_state.user_id))
    except Exception as e:
        st.error(f"Could not load transactions: {e}")
        return

    if not transactions:
        st.info("📋 Your transactions will appear here once you add them.")
        return

    currency = current_currency()
    for transaction in transactions:
        render_transaction_row(transaction, currency, key_prefix="all")


def render_analytics_page(analytics_flow: AnalyticsFlow):
    """Balance, income vs expenses, category and daily charts."""
    st.title("📊 Analytics")
    currency = current_currency()

    period = st.radio(
        "Period",
        options=list(Period),
        index=1,
        format_func=lambda p: p.value.title(),
        horizontal=True,
    )

    try:
        summary = run_async(analytics_flow.summary_for_period(st.session_state.user_id, period))
    except Exception as e:
        st.error(f"Could not load analytics: {e}")
        return

    st.caption(summary.date_range.label())

    st.markdown(f"""
    <div class="{summary.status.style}">
        <h4>Balance</h4>
        <p class="big-number">{format_signed(summary.totals.balance, currency)}</p>
        <p>{summary.status.message}</p>
    </div>
    """, unsafe_allow_html=True)

    col1, col2 = st.columns(2)
    col1.metric("Income", format_currency(summary.totals.income, currency))
    col2.metric("Expenses", format_currency(summary.totals.expense, currency))

    if summary.transaction_count == 0:
        st.info("No transactions in this period.")
        return

    flows = pd.DataFrame({
        "Type": ["Income", "Expenses"],
        "Amount": [float(summary.totals.income), float(summary.totals.expense)],
    })
    fig_flow = px.bar(flows, x="Type", y="Amount", color="Type", title="Income vs Expenses", text_auto=True)
    st.plotly_chart(fig_flow, use_container_width=True)

    if summary.categories:
        categories = pd.DataFrame({
            "Category": [category_label(entry.category) for entry in summary.categories],
            "Total": [float(entry.amount) for entry in summary.categories],
        })
        fig_pie = px.pie(categories, names="Category", values="Total", title="Spending by Category", hole=0.4)
        st.plotly_chart(fig_pie, use_container_width=True)

    daily = pd.DataFrame({
        "Day": [entry.label for entry in summary.daily],
        "Spent": [float(entry.amount) for entry in summary.daily],
    })
    fig_daily = px.bar(daily, x="Day", y="Spent", title="Daily Spending")
    st.plotly_chart(fig_daily, use_container_width=True)

    if summary.biggest_category:
        biggest = summary.biggest_category
        st.markdown(f"""
        <div class="info-box">
            <h4>Biggest Category</h4>
            <p><strong>{category_label(biggest.category)}</strong>: {format_currency(biggest.amount, currency)}</p>
        </div>
        """, unsafe_allow_html=True)


def render_profile_page(profile_flow: ProfileFlow):
    """Display name, currency and lifetime stats."""
    st.title("👤 Profile")
    user_id = st.session_state.user_id

    try:
        profile = run_async(profile_flow.get_profile(user_id, st.session_state.email))
        stats = run_async(profile_flow.get_stats(user_id))
    except Exception as e:
        st.error(f"Could not load profile: {e}")
        return

    with st.form("profile"):
        display_name = st.text_input("Display Name", value=profile.display_name)
        st.text_input("Email", value=profile.email or st.session_state.email, disabled=True)
        currency = st.selectbox(
            "Currency",
            options=list(Currency),
            index=list(Currency).index(profile.currency),
            format_func=lambda c: c.label,
        )
        submitted = st.form_submit_button("💾 Save Profile", type="primary")

    if submitted:
        try:
            updated = run_async(profile_flow.update_profile(
                user_id,
                display_name=display_name,
                currency=currency,
                email=st.session_state.email,
            ))
        except Exception as e:
            st.error(f"Failed to save profile: {e}")
        else:
            st.session_state.currency = updated.currency
            st.session_state.display_name = updated.greeting_name
            st.success("Profile saved")
            st.rerun()

    st.markdown("### All-Time Stats")
    currency = current_currency()
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Income", format_currency(stats.total_income, currency))
    col2.metric("Total Expenses", format_currency(stats.total_expenses, currency))
    col3.metric("Balance", format_signed(stats.balance, currency))
    col4.metric("Transactions", stats.transaction_count)


def render_settings_page(storage_connected: bool):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application Settings", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if not storage_connected:
        st.markdown("""
        <div class="warning-box">
            <h4>⚠️ Using temporary storage</h4>
            <p>Google Sheets is not configured, so data is kept in memory and
            will be lost when the app restarts.</p>
        </div>
        """, unsafe_allow_html=True)

    st.markdown("---")
    st.markdown("### Budgets")
    currency = current_currency()
    for category, limit in get_settings().app.category_budgets.items():
        st.markdown(f"{category_label(category)}: **{format_currency(limit, currency)}** per month")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
