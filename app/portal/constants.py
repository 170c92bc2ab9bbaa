"""
Central constants for the intake portal.
"""
from __future__ import annotations

PLAN_TYPES = ("FIBERBIZ_100", "FIBERBIZ_300", "AFFORDABOOST_500")

PLAN_LABELS = {
    "FIBERBIZ_100": "FiberBiz 100 Mbps",
    "FIBERBIZ_300": "FiberBiz 300 Mbps",
    "AFFORDABOOST_500": "Affordaboost 500 Mbps",
}

ORG_TYPES = ("SOLE_PROP", "PARTNERSHIP", "CORP", "COOP")

ORG_LABELS = {
    "SOLE_PROP": "Sole Proprietorship",
    "PARTNERSHIP": "Partnership",
    "CORP": "Corporation",
    "COOP": "Cooperative",
}

TAX_PROFILES = ("VAT_REGISTERED", "NON_VAT")

DEFAULT_BUSINESS_OWNERSHIP = "Private"
DEFAULT_TAX_PROFILE = "VAT_REGISTERED"

DOC_TYPES = (
    "MAYORS_PERMIT",
    "DTI",
    "SEC",
    "CDA",
    "BOARD_RES",
    "SEC_CERT",
    "BIO_PAGE_ID",
    "SPECIMEN_SIGS",
    "ARTICLES_OF_PARTNERSHIP",
    "PARTNERS_RESOLUTION",
)

# Upload form field name -> stored doc type
DOC_TYPE_MAP = {
    "mayors_permit": "MAYORS_PERMIT",
    "dti_registration": "DTI",
    "sec_registration": "SEC",
    "cda_registration": "CDA",
    "board_resolution": "BOARD_RES",
    "sec_certificate": "SEC_CERT",
    "bio_page_id": "BIO_PAGE_ID",
    "specimen_sigs": "SPECIMEN_SIGS",
    "articles_of_partnership": "ARTICLES_OF_PARTNERSHIP",
    "partners_resolution": "PARTNERS_RESOLUTION",
}

DOC_LABELS = {
    "mayors_permit": "Mayor's Permit",
    "dti_registration": "DTI Registration",
    "sec_registration": "SEC Registration",
    "cda_registration": "CDA Registration",
    "board_resolution": "Board Resolution",
    "sec_certificate": "Secretary's Certificate",
    "bio_page_id": "Valid ID (Signatory)",
    "specimen_sigs": "3 Specimen Signatures",
    "articles_of_partnership": "Articles of Partnership",
    "partners_resolution": "Partners Resolution",
}

COMMON_DOC_FIELDS = ("bio_page_id", "specimen_sigs")

# Documents every applicant of the org type must upload (CORP's either/or pair is checked separately)
REQUIRED_DOC_FIELDS = {
    "SOLE_PROP": ("mayors_permit", "dti_registration"),
    "PARTNERSHIP": ("sec_registration", "articles_of_partnership", "partners_resolution"),
    "CORP": ("sec_registration",),
    "COOP": ("cda_registration", "board_resolution"),
}

# Documents shown on the form per org type
ORG_DOC_FIELDS = {
    "SOLE_PROP": ("mayors_permit", "dti_registration"),
    "PARTNERSHIP": ("sec_registration", "articles_of_partnership", "partners_resolution"),
    "CORP": ("sec_registration", "sec_certificate", "board_resolution"),
    "COOP": ("cda_registration", "board_resolution"),
}

ALLOWED_UPLOAD_EXTENSIONS = frozenset({".pdf", ".png", ".jpg", ".jpeg"})
