from .normalizer import (
    NormalizationResult,
    NormalizedCaseStatus,
    RawPassthrough,
    is_normalized,
    normalize_case_status,
)

__all__ = [
    "NormalizationResult",
    "NormalizedCaseStatus",
    "RawPassthrough",
    "is_normalized",
    "normalize_case_status",
]
