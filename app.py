import altair as alt
import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Any, Dict, Optional

from caseboard.data import default_store, load_dashboard_data, run_fetch_cycle
from caseboard.filters import SORT_COLUMNS, normalize_filters
from caseboard.metrics import METRIC_LABELS
from caseboard.metrics_debug import compute_debug
from caseboard.metrics_map import compute_map
from caseboard.metrics_overview import compute_overview
from caseboard.metrics_table import compute_table, table_frame
from caseboard.metrics_treemap import compute_treemap

alt.data_transformers.disable_max_rows()
# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_snapshot_summary(version: int, fetched_at: str, countries: int) -> str:
    chips = [f"Snapshot: #{version}", f"Fetched: {fetched_at[:19].replace('T', ' ')} UTC", f"Countries: {countries}"]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, summary_html: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([7, 3])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh"):
            result = run_fetch_cycle(default_store())
            if not result.ok:
                st.session_state["_refresh_error"] = result.error
            st.rerun()
        if export_df is not None and not export_df.empty:
            btn_cols[1].download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{summary_html}</div>", unsafe_allow_html=True)


# ---------- UI setup ----------
st.set_page_config(page_title="Case Statistics Dashboard", layout="wide")
inject_base_styles()
st.title("Case Statistics Dashboard")
st.caption("Confirmed, deaths, recovered and active cases per country/region.")

refresh_error = st.session_state.pop("_refresh_error", None)
if refresh_error:
    st.error(f"Refresh failed: {refresh_error}")

with st.spinner("Loading case data..."):
    cycle = load_dashboard_data()
if not cycle.ok or cycle.snapshot is None:
    st.error(f"Error: {cycle.error}")
    if st.button("Retry"):
        st.rerun()
    st.stop()

snapshot = cycle.snapshot
summary_html = format_snapshot_summary(snapshot.version, snapshot.fetched_at.isoformat(), len(snapshot.stats))

# ----- Sidebar: navigation + options -----
with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Overview", "Map", "Treemap", "Table", "Data Quality / Debug"], index=1)
    metric = st.selectbox(
        "Metric",
        options=["confirmed", "active", "recovered", "death"],
        format_func=lambda m: METRIC_LABELS[m],
    )
    st.markdown("---")
    with st.expander("Table settings", expanded=False):
        country_query = st.text_input("Country / Region search", "")
        sort_by = st.selectbox("Sort by", options=list(SORT_COLUMNS), index=1)
        ascending = st.checkbox("Ascending", value=False)
        page_size = st.slider("Rows per page", min_value=10, max_value=100, value=25, step=5)
        top_n = st.slider("Top N countries", min_value=5, max_value=50, value=15, step=5)


def render_overview_page():
    payload = compute_overview(snapshot, metric=metric, top_n=top_n)
    render_page_header("Overview", "Home / Overview", summary_html)
    kpis = payload["kpis"]
    totals = kpis["totals"]
    cols = st.columns(5)
    cols[0].metric("Confirmed", f"{totals['confirmed']:,}")
    cols[1].metric("Active", f"{totals['active']:,}")
    cols[2].metric("Deaths", f"{totals['death']:,}", help=f"{kpis['case_fatality_pct']:.2f}% of confirmed")
    cols[3].metric("Recovered", f"{totals['recovered']:,}", help=f"{kpis['recovery_pct']:.2f}% of confirmed")
    cols[4].metric("Countries", f"{kpis['countries']:,}")
    with card(f"Top {top_n} by {METRIC_LABELS[payload['metric']]}"):
        chart = payload["charts"].get("top_countries")
        if chart:
            st.vega_lite_chart(chart, use_container_width=True)
        else:
            st.info("No countries to rank.")


def render_map_page():
    payload: Dict[str, Any] = compute_map(snapshot, metric)
    render_page_header(f"{payload['label']} map", "Home / Map", summary_html)
    with card(f"{payload['label']} by country (domain 0 – {payload['domain']['max']:,})"):
        chart = payload["charts"].get("map")
        if chart:
            st.vega_lite_chart(chart, use_container_width=True)
        else:
            st.info("No countries with usable coordinates.")
    if payload["excluded_geometry"]:
        st.caption(f"Not placed on the map (no usable coordinates): {', '.join(payload['excluded_geometry'])}")


def render_treemap_page():
    payload = compute_treemap(snapshot, metric)
    render_page_header(payload["title"], "Home / Treemap", summary_html)
    nodes = pd.DataFrame(payload["nodes"], columns=["name", "size", "percentage", "color"])
    if nodes.empty:
        st.info("No countries with positive values.")
        return
    with card(payload["title"]):
        bars = (
            alt.Chart(nodes.head(top_n))
            .mark_bar()
            .encode(
                x=alt.X("size:Q", title=METRIC_LABELS[payload["metric"]], axis=alt.Axis(format="~s")),
                y=alt.Y("name:N", title=None, sort="-x"),
                color=alt.Color("color:N", scale=None, legend=None),
                tooltip=[
                    alt.Tooltip("name:N", title="Country/Region"),
                    alt.Tooltip("size:Q", format=","),
                    alt.Tooltip("percentage:Q", title="%", format=".1f"),
                ],
            )
        )
        st.altair_chart(bars, use_container_width=True)
        st.dataframe(nodes[["name", "size", "percentage"]], hide_index=True, use_container_width=True)


def render_table_page():
    if "table_page" not in st.session_state:
        st.session_state["table_page"] = 1
    filters = normalize_filters(
        {
            "country_query": country_query,
            "sort_by": sort_by,
            "ascending": ascending,
            "page": st.session_state["table_page"],
            "page_size": page_size,
        }
    )
    payload = compute_table(filters, snapshot)
    render_page_header("Countries", "Home / Table", summary_html, export_df=table_frame(filters, snapshot), export_name="countries.csv")
    st.dataframe(pd.DataFrame(payload["rows"]), hide_index=True, use_container_width=True)
    c1, c2, c3 = st.columns([1, 2, 1])
    if c1.button("Previous", disabled=payload["page"] <= 1):
        st.session_state["table_page"] = payload["page"] - 1
        st.rerun()
    c2.markdown(f"Page {payload['page']} of {payload['pages']} ({payload['total_rows']} countries)")
    if c3.button("Next", disabled=payload["page"] >= payload["pages"]):
        st.session_state["table_page"] = payload["page"] + 1
        st.rerun()


def render_debug_page():
    payload = compute_debug(snapshot, last_error=default_store().last_error)
    render_page_header("Data Quality / Debug", "Home / Debug", summary_html)
    with card("Data Quality"):
        st.markdown("**Row counts**")
        st.write(payload["row_counts"])
        st.markdown("**Cleaning checks**")
        st.write(payload["cleaning_checks"])
        if payload["sample"]:
            st.markdown("**Sample records**")
            st.dataframe(pd.DataFrame(payload["sample"]), hide_index=True)
    st.caption("Data is rebuilt from the source API on every refresh; nothing is stored locally.")


if nav_choice == "Overview":
    render_overview_page()
elif nav_choice == "Map":
    render_map_page()
elif nav_choice == "Treemap":
    render_treemap_page()
elif nav_choice == "Table":
    render_table_page()
else:
    render_debug_page()
