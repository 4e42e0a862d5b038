# =============================================================================
# Province Backfill Shared Libraries
# =============================================================================
# This package contains shared libraries for the province backfill tooling.
# See individual sub-packages for detailed documentation.
# =============================================================================

"""
Province backfill shared libraries.

Sub-packages:
- models: Pydantic data models, results and settings
- backfill: paged, batched, resumable field backfill over document stores
"""

__version__ = "0.1.0"
