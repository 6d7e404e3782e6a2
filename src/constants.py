from __future__ import annotations

# ---------------------------------------------------------------------------
# Dimensions: categorical fields usable for filtering, drill-down and grouping.
# Keys are dimension names; the record field each one reads lives on the
# RecordSchema (src/schema.py). Permits "status" reads current_status, not the
# Opened/Closed lifecycle field.
# ---------------------------------------------------------------------------
PERMIT_DIMENSIONS = ["service_type", "status", "owner", "zone", "priority"]
INSPECTION_DIMENSIONS = ["inspection_type", "status", "inspector", "zone", "priority", "category"]

DIMENSION_LABELS = {
    "service_type": "Service Type",
    "inspection_type": "Inspection Type",
    "status": "Status",
    "owner": "Owner",
    "inspector": "Inspector",
    "zone": "Zone",
    "priority": "Priority",
    "category": "Category",
    "month": "Month",
    "sla_status": "SLA Status",
    "reinspection_required": "Reinspection",
}

ROOT_LABEL = "Overview"
GROUP_MARKER_PREFIX = "_group_"

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
PERMIT_LIFECYCLE = ["Opened", "Closed"]
INSPECTION_STATUSES = ["Completed", "Pending", "In Progress", "Scheduled", "Failed", "Cancelled"]
ALLOWED_PRIORITY = {"High", "Medium", "Low"}
PRIORITY_ORDER = ["High", "Medium", "Low"]
SLA_STATUSES = ["Within SLA", "SLA Breached", "N/A"]
SLA_BREACHED = "SLA Breached"
SLA_WITHIN = "Within SLA"

# Filter "unset" sentinels differ per domain.
PERMIT_UNSET = "all"
INSPECTION_UNSET = ""

# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------
PALETTE = ["#3B82F6", "#8B5CF6", "#06B6D4", "#F59E0B", "#EF4444", "#22C55E", "#EC4899"]
FALLBACK_COLOR = "#6B7280"

PERMIT_STATUS_COLORS = {
    "Approved": "#22C55E",
    "Rejected": "#EF4444",
    "Technical Review": "#F59E0B",
    "Pending": "#8B5CF6",
    "Inspection": "#06B6D4",
    "Need modification": "#F97316",
    "Consultant": "#EC4899",
    "GIF at Plan(2)": "#14B8A6",
    "Technical Review At Plan 201+R": "#6366F1",
}

INSPECTION_STATUS_COLORS = {
    "Completed": "#22C55E",
    "Pending": "#F59E0B",
    "In Progress": "#3B82F6",
    "Scheduled": "#8B5CF6",
    "Failed": "#EF4444",
    "Cancelled": "#6B7280",
}

PRIORITY_COLORS = {
    "High": "#EF4444",
    "Medium": "#F59E0B",
    "Low": "#22C55E",
}

# Column colours for comparison cohorts (value1..value3).
COHORT_COLORS = ["#3B82F6", "#10B981", "#8B5CF6"]

# ---------------------------------------------------------------------------
# Short names for long permit service types (chart axis labels).
# ---------------------------------------------------------------------------
SERVICE_TYPE_SHORT_NAMES = {
    "Request for Sewerage Connection Point Details": "Connection Point Details",
    "Sewerage Site Inspection": "Site Inspection",
    "Approve the Creation of a New Sewerage Connection Point": "New Connection Point",
    "Obtain Copy of Existing Sewerage Setouts": "Sewerage Setouts Copy",
    "Issue Approval to Modify the Sewerage Manholes Level": "Manholes Modification",
    "Approve Temporary Connection to Sewerage Line": "Temporary Connection",
    "Request for External Sewerage Device Approval": "External Device Approval",
}
SHORT_NAME_MAX = 15

# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------
COMPARE_NONE = "none"
PERMIT_COMPARE_DIMENSIONS = ["zone", "month", "service_type", "owner"]
INSPECTION_COMPARE_DIMENSIONS = ["zone", "month", "category"]
MIN_COHORTS = 2
MAX_COHORTS = 3
MONTH_OPTIONS_LIMIT = 6
MONTH_LABEL_FORMAT = "%b %y"

# ---------------------------------------------------------------------------
# SLA, aging and periods
# ---------------------------------------------------------------------------
SLA_TARGET = 95
AT_RISK_HOURS = 24
BACKLOG_FRESH_DAYS = 3
BACKLOG_STALE_DAYS = 7
SCORE_EXCELLENT = 90
SCORE_GOOD = 70
PERIODS = ["week", "month", "quarter", "year"]
PERIOD_LABELS = {
    "week": "This Week",
    "month": "This Month",
    "quarter": "This Quarter",
    "year": "This Year",
}

# ---------------------------------------------------------------------------
# Record files and required keys (src/storage.py, src/schema_validate.py)
# ---------------------------------------------------------------------------
PERMITS_FILE = "permits.jsonl"
INSPECTIONS_FILE = "inspections.jsonl"

PERMIT_REQUIRED_KEYS = [
    "request_no", "service_type", "location", "current_status", "service_sla",
    "remaining_time", "creation_date", "updated_date", "status", "owner",
    "permit_category", "priority", "zone",
]

INSPECTION_REQUIRED_KEYS = [
    "inspection_no", "inspection_type", "location", "status", "scheduled_date",
    "completed_date", "inspector", "compliance_score", "priority", "zone",
    "category", "reinspection_required", "sla_status", "duration",
]

# Columns shown in the record tables of the detail view.
PERMIT_TABLE_COLUMNS = [
    "request_no", "service_type", "current_status", "status", "priority",
    "zone", "owner", "remaining_time", "creation_date",
]
INSPECTION_TABLE_COLUMNS = [
    "inspection_no", "inspection_type", "status", "priority", "zone",
    "category", "inspector", "compliance_score", "sla_status", "scheduled_date",
]
MAX_GROUP_LEVELS = 3
TABLE_ROW_LIMIT = 200
