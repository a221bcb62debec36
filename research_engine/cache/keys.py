"""
Cache key derivation.

Section entries live at "<company>_<section>", where company is the
trimmed, lower-cased query. The persistent tier stores the write time
alongside each entry at "<key>_timestamp".
"""

TIMESTAMP_SUFFIX     = "_timestamp"
BULK_COMPLETE_SUFFIX = "_cloud_function_complete"
BULK_TIME_SUFFIX     = "_cloud_function_timestamp"


def normalize_company(company: str) -> str:
    return company.strip().lower()


def section_key(company: str, section) -> str:
    return f"{normalize_company(company)}_{section}"


def timestamp_key(key: str) -> str:
    return f"{key}{TIMESTAMP_SUFFIX}"


def bulk_complete_key(company: str) -> str:
    return f"{normalize_company(company)}{BULK_COMPLETE_SUFFIX}"


def bulk_time_key(company: str) -> str:
    return f"{normalize_company(company)}{BULK_TIME_SUFFIX}"
