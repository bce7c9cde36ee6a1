"""Adapter implementations for external services."""

from vksconnect.adapters.vcf_adapter import VcfCliAdapter

__all__ = [
    "VcfCliAdapter",
]
