"""Funding rate timeline: bulk seed dataset plus live/API samples."""

from fomo.funding.aligner import FundingAligner
from fomo.funding.seed import load_seed_funding

__all__ = [
    "FundingAligner",
    "load_seed_funding",
]
