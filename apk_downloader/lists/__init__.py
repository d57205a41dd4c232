"""
Identifier Source Layer.

Turns the user's input (a single app ID, a CSV or line-list file, or the
AndroidRank popularity list) into an ordered list of work items.
"""

from .android_rank import ANDROID_RANK_URL, fetch_android_rank_list
from .csv_list import (
    ParseDiagnostic,
    ParsedList,
    is_package_name,
    load_csv_list,
    parse_csv_text,
    single_item,
)

__all__ = [
    "ANDROID_RANK_URL",
    "ParseDiagnostic",
    "ParsedList",
    "fetch_android_rank_list",
    "is_package_name",
    "load_csv_list",
    "parse_csv_text",
    "single_item",
]
