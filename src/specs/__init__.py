"""Descriptor model, parsing and project manifest lookup."""

from .models import Descriptor, Found, InstallRecord, Locator, LookupResult, NoProject, NoSpec
from .parser import is_url, parse_spec
from .lookup import load_spec

__all__ = [
    "Descriptor",
    "Found",
    "InstallRecord",
    "Locator",
    "LookupResult",
    "NoProject",
    "NoSpec",
    "is_url",
    "load_spec",
    "parse_spec",
]
