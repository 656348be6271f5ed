"""
Utilities module - Output helpers.
"""
from form_agent.utils.output import print_json, to_jsonable

__all__ = [
    "print_json",
    "to_jsonable",
]
