"""Fixed vocabularies, table keys and defaults shared across ProjectDesk."""

from __future__ import annotations

from enum import Enum


class AutomationStatus(str, Enum):
    """Machine-owned lifecycle state of a project record."""

    BLANK = ""
    READY = "Ready"
    CREATED = "Created"
    UPDATED = "Updated"
    DELETE_NOTIFY = "Delete (Notify)"
    DELETE_NO_NOTIFY = "Delete (Don't Notify)"
    DELETED = "Deleted"
    ERROR = "Error"

    @property
    def is_delete_request(self) -> bool:
        return self in (AutomationStatus.DELETE_NOTIFY, AutomationStatus.DELETE_NO_NOTIFY)

    @classmethod
    def parse(cls, value: str | None) -> AutomationStatus | None:
        """Parse a cell value, returning None for values outside the enum."""
        text = (value or "").strip()
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        return None


# Project status (human-owned progress field)
STATUS_PROJECT_ASSIGNED = "Project Assigned"
STATUS_ON_TRACK = "On Track"
STATUS_BEHIND_SCHEDULE = "Behind Schedule"
STATUS_STUCK = "Stuck"
STATUS_LATE = "Late"
STATUS_COMPLETE = "Complete"

INITIAL_PROJECT_STATUS = STATUS_PROJECT_ASSIGNED
TERMINAL_PROJECT_STATUS = STATUS_COMPLETE
DEFAULT_PROJECT_STATUSES = [
    STATUS_PROJECT_ASSIGNED,
    STATUS_ON_TRACK,
    STATUS_BEHIND_SCHEDULE,
    STATUS_STUCK,
    STATUS_LATE,
    STATUS_COMPLETE,
]

DEFAULT_CATEGORY = "LCAP"
DEFAULT_REMINDER_OFFSETS = [3, 7, 14]
DEFAULT_SCHOOL_YEAR_START_MONTH = 7

# Project table keys (second row of projects.csv)
COL_PROJECT_ID = "project_id"
COL_CREATED_AT = "created_at"
COL_SCHOOL_YEAR = "school_year"
COL_GOAL_NUMBER = "goal_number"
COL_ACTION_NUMBER = "action_number"
COL_CATEGORY = "category"
COL_PROJECT_NAME = "project_name"
COL_DESCRIPTION = "description"
COL_ASSIGNEE = "assignee"
COL_REQUESTED_BY = "requested_by"
COL_DUE_DATE = "due_date"
COL_PROJECT_STATUS = "project_status"
COL_COMPLETED_AT = "completed_at"
COL_REMINDER_OFFSETS = "reminder_offsets"
COL_AUTOMATION_STATUS = "automation_status"
COL_CALENDAR_EVENT_ID = "calendar_event_id"
COL_FOLDER_ID = "folder_id"
COL_FILE_ID = "file_id"
COL_NOTES = "notes"
COL_AUTOMATION_ERROR = "automation_error"

REQUIRED_PROJECT_COLUMNS = [
    COL_PROJECT_ID,
    COL_CREATED_AT,
    COL_SCHOOL_YEAR,
    COL_GOAL_NUMBER,
    COL_ACTION_NUMBER,
    COL_CATEGORY,
    COL_PROJECT_NAME,
    COL_DESCRIPTION,
    COL_ASSIGNEE,
    COL_REQUESTED_BY,
    COL_DUE_DATE,
    COL_PROJECT_STATUS,
    COL_COMPLETED_AT,
    COL_REMINDER_OFFSETS,
    COL_AUTOMATION_STATUS,
    COL_CALENDAR_EVENT_ID,
    COL_FOLDER_ID,
    COL_FILE_ID,
    COL_NOTES,
]

# User-facing labels written above the key row by `init`
PROJECT_COLUMN_LABELS = {
    COL_PROJECT_ID: "Project ID",
    COL_CREATED_AT: "Created",
    COL_SCHOOL_YEAR: "School Year",
    COL_GOAL_NUMBER: "Goal #",
    COL_ACTION_NUMBER: "Action #",
    COL_CATEGORY: "Category",
    COL_PROJECT_NAME: "Project Name",
    COL_DESCRIPTION: "Description",
    COL_ASSIGNEE: "Assigned to",
    COL_REQUESTED_BY: "Requested by",
    COL_DUE_DATE: "Deadline",
    COL_PROJECT_STATUS: "Project Status",
    COL_COMPLETED_AT: "Completed",
    COL_REMINDER_OFFSETS: "Reminders",
    COL_AUTOMATION_STATUS: "Automation Status",
    COL_CALENDAR_EVENT_ID: "Calendar Event ID",
    COL_FOLDER_ID: "Folder ID",
    COL_FILE_ID: "File ID",
    COL_NOTES: "Notes",
    COL_AUTOMATION_ERROR: "Automation Error",
}

# District config table keys
CFG_DISTRICT_ID = "District ID"
CFG_NEXT_SERIAL = "Next Serial"
CFG_PARENT_FOLDER_ID = "Parent Folder ID"
CFG_ROOT_FOLDER_ID = "Root Folder ID"
CFG_MAIN_SPREADSHEET_ID = "Main Spreadsheet ID"
CFG_PROJECT_TEMPLATE_ID = "Project Template ID"
CFG_FORM_ID = "Form ID"
CFG_ERROR_EMAILS = "Error Email Addresses"
CFG_TEMPLATE_NEW_PROJECT = "Email Template - New Project"
CFG_TEMPLATE_REMINDER = "Email Template - Reminder"
CFG_TEMPLATE_STATUS_CHANGE = "Email Template - Status Change"
CFG_TEMPLATE_UPDATE = "Email Template - Project Update"
CFG_TEMPLATE_CANCELLATION = "Email Template - Project Cancellation"
CFG_DEBUG_MODE = "Debug Mode"
CFG_SCHOOL_YEAR_START_MONTH = "School Year Start Month"
CFG_BACKUPS_FOLDER_ID = "Backups Folder ID"

REQUIRED_CONFIG_KEYS = [
    CFG_DISTRICT_ID,
    CFG_NEXT_SERIAL,
    CFG_PARENT_FOLDER_ID,
    CFG_ROOT_FOLDER_ID,
    CFG_MAIN_SPREADSHEET_ID,
    CFG_PROJECT_TEMPLATE_ID,
    CFG_FORM_ID,
    CFG_ERROR_EMAILS,
    CFG_TEMPLATE_NEW_PROJECT,
    CFG_TEMPLATE_REMINDER,
    CFG_TEMPLATE_STATUS_CHANGE,
    CFG_TEMPLATE_UPDATE,
    CFG_TEMPLATE_CANCELLATION,
]

# Ids that must point at reachable files or folders
FILE_ACCESS_CONFIG_KEYS = [
    CFG_PARENT_FOLDER_ID,
    CFG_ROOT_FOLDER_ID,
    CFG_MAIN_SPREADSHEET_ID,
    CFG_PROJECT_TEMPLATE_ID,
    CFG_TEMPLATE_NEW_PROJECT,
    CFG_TEMPLATE_REMINDER,
    CFG_TEMPLATE_STATUS_CHANGE,
    CFG_TEMPLATE_UPDATE,
    CFG_TEMPLATE_CANCELLATION,
]

# Directory table columns
DIR_NAME = "Name"
DIR_EMAIL = "Email Address"
DIR_ACTIVE = "Active?"
DIR_GLOBAL_ACCESS = "Global Access"
DIR_MAIN_ROLE = "Project Directory Role"
DIR_FOLDER_ROLE = "Project Folders Role"
DIRECTORY_COLUMNS = [DIR_NAME, DIR_EMAIL, DIR_ACTIVE, DIR_GLOBAL_ACCESS, DIR_MAIN_ROLE, DIR_FOLDER_ROLE]

# Codes table columns
CODES_CATEGORY = "Category"
CODES_STATUS = "Status"
CODES_REMINDER_DAYS = "Reminder Days"
CODES_REMINDER_LABEL = "Reminder Days: Readable"
CODES_COLUMNS = [CODES_CATEGORY, CODES_STATUS, CODES_REMINDER_DAYS, CODES_REMINDER_LABEL]

# Snapshot table columns
SNAPSHOT_COLUMNS = [COL_PROJECT_ID, COL_PROJECT_STATUS]

# Intake field map table columns
INTAKE_FORM_FIELD = "Form Field"
INTAKE_INTERNAL_KEY = "Internal Key"

DEFAULT_INTAKE_FIELD_MAP = {
    "Goal #": COL_GOAL_NUMBER,
    "Goal # (if available)": COL_GOAL_NUMBER,
    "LCAP Goal # (if available)": COL_GOAL_NUMBER,
    "Action #": COL_ACTION_NUMBER,
    "Action # (if available)": COL_ACTION_NUMBER,
    "LCAP Action # (if available)": COL_ACTION_NUMBER,
    "Category": COL_CATEGORY,
    "Title": COL_PROJECT_NAME,
    "Project Title": COL_PROJECT_NAME,
    "Description": COL_DESCRIPTION,
    "Assigned to": COL_ASSIGNEE,
    "Deadline": COL_DUE_DATE,
    "Notes": COL_NOTES,
}

SUBMITTER_EMAIL_FIELDS = ["Email Address", "Email address", "email address", "Email"]
SUBMITTER_EMAIL_POSITION = 1

# Form questions kept in sync with the directory and codes
FORM_ASSIGNEE_QUESTION = "Assigned to"
FORM_CATEGORY_QUESTION = "Category"

# Labels in the "Overview" of each project's template file
TEMPLATE_FIELD_LABELS = [
    "School Year",
    "Goal #",
    "Action #",
    "Category",
    "Title",
    "Description",
    "Assigned to",
    "Requested by",
    "Deadline",
]

# Calendar event colors by project status
EVENT_COLOR_DEFAULT = "yellow"
EVENT_COLORS = {
    STATUS_PROJECT_ASSIGNED: "gray",
    STATUS_COMPLETE: "green",
    STATUS_LATE: "red",
}

ERROR_SUBJECT_PREFIX = "[Teaming Tool Error]"
BACKUP_NAME_PREFIX = "Project Directory Backup"
