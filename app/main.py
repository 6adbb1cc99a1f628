"""
Streamlit Frontend for StreamShare

The household's single screen for shared subscriptions: what each
person owes this month, who has already paid, payment history, and
who shares which service.

DESIGN PRINCIPLES:
1. One month in view at a time, chosen with the arrows in the header
2. Every write shows its outcome; failures say what was kept
3. All UI state lives in the AppController, never in loose widgets
4. Works without a backend (demo mode, in memory)
"""

from typing import Optional

import streamlit as st

from streamshare.config import get_settings, validate_all_settings
from streamshare.controller import AppController, Tab
from streamshare.models import round_money
from streamshare.orchestrator import CascadeError, create_app_components
from streamshare.queries import ALL_MEMBERS
from streamshare.runner import AsyncRunner
from streamshare.services.storage import PersistenceError
from streamshare.validation import ValidationError


# Page configuration
st.set_page_config(
    page_title="StreamShare",
    page_icon="📺",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
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
    .month-title {
        font-size: 1.8em;
        font-weight: bold;
        text-align: center;
        text-transform: capitalize;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)

TAB_LABELS = {
    Tab.DASHBOARD: "📊 Summary",
    Tab.REPORTS: "📋 Reports",
    Tab.MANAGE: "⚙️ Manage",
}


@st.cache_resource
def get_runner() -> AsyncRunner:
    """The one event loop every session's coroutines run on."""
    return AsyncRunner()


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    return get_runner().run(coro)


@st.cache_resource
def get_components():
    """Get or create the shared ledger (cached) and load the snapshot once."""
    ledger, backend = create_app_components()
    try:
        run_async(ledger.load())
    except PersistenceError as e:
        st.error(f"Could not load data: {e}")
    return ledger, backend


def get_controller() -> AppController:
    """One controller per browser session."""
    if "controller" not in st.session_state:
        ledger, _ = get_components()
        st.session_state.controller = AppController(ledger)
    return st.session_state.controller


def money(amount) -> str:
    return f"{get_settings().app.currency_symbol}{round_money(amount):.2f}"


def attempt(controller: AppController, coro, success: Optional[str] = None) -> bool:
    """Run a controller intent, reporting the outcome."""
    try:
        run_async(coro)
    except CascadeError as e:
        st.error(
            f"{e}. The member was kept; run the removal again to retry "
            "the remaining services."
        )
        return False
    except (ValidationError, PersistenceError):
        st.error(controller.view.last_error)
        return False
    if success:
        st.toast(success)
    return True


def main():
    """Main application entry point."""
    controller = get_controller()
    _, backend = get_components()

    st.sidebar.title("📺 StreamShare")
    st.sidebar.markdown("---")

    tab = st.sidebar.radio(
        "Navigate to:",
        list(Tab),
        index=list(Tab).index(controller.view.active_tab),
        format_func=lambda t: TAB_LABELS[t],
    )
    controller.select_tab(tab)

    st.sidebar.markdown("---")
    if backend == "memory":
        st.sidebar.warning("Demo mode: data is kept in memory only.")
    else:
        st.sidebar.caption(f"Storage: {backend}")

    if st.sidebar.button("🔄 Reload data"):
        attempt(controller, controller.refresh(), "Data reloaded")

    with st.sidebar.expander("Connection Status"):
        render_connection_status()

    render_skipped_rows(controller)
    render_header(controller)

    if controller.view.active_tab == Tab.DASHBOARD:
        render_dashboard_page(controller)
    elif controller.view.active_tab == Tab.REPORTS:
        render_reports_page(controller)
    elif controller.view.active_tab == Tab.MANAGE:
        render_manage_page(controller)


def render_skipped_rows(controller: AppController):
    """Warn about stored rows that could not be shown."""
    skipped = controller.snapshot.skipped_rows
    if not skipped:
        return

    st.warning(
        f"{len(skipped)} stored row(s) could not be read and are hidden. "
        "Fix them in the store, then reload."
    )
    with st.expander("Unreadable rows"):
        for row in skipped:
            st.markdown(f"**{row.table}** `{row.row_id}`")
            st.caption(row.reason)


def render_header(controller: AppController):
    """Month navigation; changes what is shown, never what is stored."""
    col1, col2, col3 = st.columns([1, 4, 1])

    with col1:
        if st.button("◀", key="previous_month"):
            controller.previous_month()
            st.rerun()

    with col2:
        st.markdown(
            f'<div class="month-title">{controller.month_label}</div>',
            unsafe_allow_html=True,
        )

    with col3:
        if st.button("▶", key="next_month"):
            controller.next_month()
            st.rerun()

    st.markdown("---")


def render_dashboard_page(controller: AppController):
    """Render the monthly summary page."""
    summary = controller.summary()

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Monthly Total", money(summary.total_cost))
    col2.metric("Members", summary.member_count)
    col3.metric("Services", summary.service_count)
    col4.metric("Paid", f"{summary.paid_count}/{summary.member_count}")

    st.markdown("### Who Owes What")

    if not summary.member_debts:
        st.info("No members yet. Add them on the Manage page.")

    for debt in summary.member_debts:
        col1, col2, col3, col4 = st.columns([3, 2, 2, 2])
        col1.markdown(f"**{debt.name}**")
        col2.markdown(money(debt.amount_due))

        if debt.paid:
            col3.markdown(f"✅ Paid on {debt.payment_date}")
            label = "Unmark"
        else:
            col3.markdown("⏳ Pending")
            label = "Mark paid"

        with col4:
            if st.button(label, key=f"pay_{debt.member_id}"):
                if attempt(controller, controller.toggle_payment(debt.member_id)):
                    st.rerun()

    if summary.member_debts:
        if summary.all_paid:
            st.markdown(
                '<div class="success-box">Everyone is settled for this month.</div>',
                unsafe_allow_html=True,
            )
        else:
            st.markdown(
                f'<div class="warning-box">Collected {money(summary.collected)}, '
                f'still pending {money(summary.outstanding)}.</div>',
                unsafe_allow_html=True,
            )

    st.markdown("### Cost per Service")

    if not summary.service_shares:
        st.info("No services yet. Add them on the Manage page.")
        return

    st.dataframe(
        [
            {
                "Service": share.name,
                "Cost": money(share.cost),
                "Participants": share.participant_count,
                "Per person": money(share.share),
            }
            for share in summary.service_shares
        ],
        use_container_width=True,
        hide_index=True,
    )


def render_reports_page(controller: AppController):
    """Render the payment history page."""
    st.title("📋 Payment History")

    members = controller.snapshot.members
    member_options = [ALL_MEMBERS] + [m.id for m in members]
    member_names = {m.id: m.name for m in members}
    years = controller.available_years()

    col1, col2 = st.columns(2)

    with col1:
        current = controller.view.report_member_filter
        member_filter = st.selectbox(
            "Filter by Member",
            options=member_options,
            index=member_options.index(current) if current in member_options else 0,
            format_func=lambda x: "All Members" if x == ALL_MEMBERS else member_names.get(x, x),
        )

    with col2:
        current = controller.view.report_year_filter
        year_filter = st.selectbox(
            "Filter by Year",
            options=years,
            index=years.index(current) if current in years else 0,
        )

    controller.set_report_filters(member=member_filter, year=year_filter)

    st.markdown("---")

    rows = controller.report_rows()
    if not rows:
        st.info("No payments match these filters.")
        return

    st.dataframe(
        [
            {"Member": row.member_name, "Month": row.month, "Paid on": row.date}
            for row in rows
        ],
        use_container_width=True,
        hide_index=True,
    )


def render_manage_page(controller: AppController):
    """Render the services and members page."""
    st.title("⚙️ Manage Household")

    col1, col2 = st.columns(2)

    with col1:
        st.markdown("### Services")
        with st.form("add_service", clear_on_submit=True):
            name = st.text_input("Service name", placeholder="Netflix")
            cost = st.text_input("Monthly cost", placeholder="15.00")
            if st.form_submit_button("➕ Add Service"):
                if attempt(controller, controller.add_service(name, cost), f"Added {name}"):
                    st.rerun()

    with col2:
        st.markdown("### Members")
        with st.form("add_member", clear_on_submit=True):
            name = st.text_input("Member name", placeholder="Alice")
            if st.form_submit_button("➕ Add Member"):
                if attempt(controller, controller.add_member(name), f"Added {name}"):
                    st.rerun()

        for member in controller.snapshot.members:
            m1, m2 = st.columns([4, 1])
            m1.markdown(member.name)
            if m2.button("🗑️", key=f"remove_member_{member.id}"):
                if attempt(controller, controller.remove_member(member.id), f"Removed {member.name}"):
                    st.rerun()

    st.markdown("---")
    st.markdown("### Who Shares What")

    members = controller.snapshot.members
    for service in controller.snapshot.services:
        with st.expander(f"{service.name} · {money(service.cost)}", expanded=True):
            if not members:
                st.caption("Add members to assign them to this service.")

            for member in members:
                key = f"share_{service.id}_{member.id}"
                # The snapshot is the source of truth, not the widget
                st.session_state[key] = service.has_member(member.id)
                st.checkbox(
                    member.name,
                    key=key,
                    disabled=controller.is_busy("service", service.id),
                    on_change=toggle_share,
                    args=(controller, service.id, member.id),
                )

            if st.button("🗑️ Remove service", key=f"remove_service_{service.id}"):
                if attempt(controller, controller.remove_service(service.id), f"Removed {service.name}"):
                    st.rerun()


def toggle_share(controller: AppController, service_id: str, member_id: str):
    """Checkbox callback: add or remove the member from the service."""
    attempt(controller, controller.toggle_member_in_service(service_id, member_id))


def render_connection_status():
    """Show which storage backends are configured."""
    status = validate_all_settings()

    services = [
        ("Supabase (Storage)", "supabase"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("App Settings", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name}")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.caption(
        "Create a `.env` file with SUPABASE_URL and SUPABASE_KEY "
        "(or GOOGLE_SHEETS_* and STORAGE_BACKEND=google_sheets)."
    )


if __name__ == "__main__":
    main()
