import streamlit as st

from src.dashboard_view import render_dashboard
from src.schema import INSPECTIONS

st.set_page_config(page_title="Inspections", layout="wide")

render_dashboard(INSPECTIONS, subtitle="Site inspections: outcomes, compliance scores and SLA")
