import streamlit as st

from src.dashboard_view import render_dashboard
from src.schema import PERMITS

st.set_page_config(page_title="Permits", layout="wide")

render_dashboard(PERMITS, subtitle="Sewerage permit requests: status, SLA and processing time")
