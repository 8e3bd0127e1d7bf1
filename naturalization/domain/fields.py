"""
Field registry for the forms platform.

Form ids, field ids and user meta keys the engine reads and writes through
the record store and the user profile store. Values are the platform's own
identifiers and must not be renumbered.
"""

# =========================================================================
# FORM IDS
# =========================================================================

FORM_MASTER = 75
FORM_INFORMATION_ABOUT_YOU = 70
FORM_MARITAL_HISTORY = 71
FORM_RESIDENCES = 38
FORM_TIME_OUTSIDE = 42
FORM_CHILDREN = 72
FORM_EMPLOYMENT = 73
FORM_CRIMINAL_HISTORY = 74

# =========================================================================
# MASTER RECORD FIELDS
# =========================================================================

MASTER_FIELD_SELF_REF = "892"
MASTER_FIELD_ANUMBER = "1"
MASTER_FIELD_DOB = "737"
MASTER_FIELD_LPR_DATE = "738"
MASTER_FIELD_TODAYS_DATE = "32"
MASTER_FIELD_MARITAL_STATUS = "758"
MASTER_FIELD_DATE_OF_MARRIAGE = "764"
MASTER_FIELD_SPOUSE_DATE_CITIZEN = "767"

MASTER_FIELD_CONTROLLING_FACTOR = "894"
MASTER_FIELD_APPLICATION_DATE = "895"
MASTER_FIELD_APP_DATE_DESCRIPTION = "896"
MASTER_FIELD_ELIGIBILITY_STATUS = "897"

# Derived dates
MASTER_FIELD_LPR_PLUS_2 = "898"  # LPR + 2 years - 90 days
MASTER_FIELD_LPR_PLUS_4 = "899"  # LPR + 4 years - 90 days
MASTER_FIELD_LPR_PLUS_3 = "900"  # LPR + 3 years - 90 days
MASTER_FIELD_LPRC = "901"  # LPR + 5 years - 90 days
MASTER_FIELD_SCC = "902"  # SC + 3 years
MASTER_FIELD_DMC = "903"  # DM + 3 years
MASTER_FIELD_DM_PLUS_2 = "904"  # DM + 2 years
MASTER_FIELD_SC_PLUS_2 = "905"  # SC + 2 years

# =========================================================================
# RESIDENCE RECORD FIELDS (form 38)
# =========================================================================

RES_FIELD_ANUMBER = "1"
RES_FIELD_FROM_DATE = "3"
RES_FIELD_TO_DATE = "4"
RES_FIELD_DURATION = "5"
RES_FIELD_PARENT_ENTRY_ID = "11"
RES_FIELD_STATE = "13.4"

# =========================================================================
# TRAVEL RECORD FIELDS (form 42)
# =========================================================================

TOC_FIELD_ANUMBER = "4"
TOC_FIELD_DEPARTURE_DATE = "5"
TOC_FIELD_RETURN_DATE = "6"
TOC_FIELD_COUNTRIES = "7"
TOC_FIELD_DURATION = "8"
TOC_FIELD_PARENT_ENTRY_ID = "12"

# =========================================================================
# USER PROFILE KEYS
# =========================================================================

META_ANUMBER = "anumber"
META_PARENT_ENTRY_ID = "parent_entry_id"
META_DOB = "dob"
META_UNLOCK_DATE = "nme_eligibility_unlock_date"
META_PURGATORY_MESSAGE = "nme_purgatory_message"
META_CONTROLLING_DESC = "nme_controlling_desc"

# The three lockout keys are always written or cleared together.
LOCKOUT_META_KEYS = (META_UNLOCK_DATE, META_PURGATORY_MESSAGE, META_CONTROLLING_DESC)

# Parent-reference field per child form
CHILD_PARENT_FIELDS = {
    FORM_RESIDENCES: RES_FIELD_PARENT_ENTRY_ID,
    FORM_TIME_OUTSIDE: TOC_FIELD_PARENT_ENTRY_ID,
}
