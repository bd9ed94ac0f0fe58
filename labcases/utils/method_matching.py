"""
Resolution of stored payment-method labels to PaymentMethod.

Legacy rows hold free-text labels: accent-stripped ("Pago movil"),
differently cased, or damaged by a UTF-8/Mac Roman round trip
("Pago m√≥vil"). Exact matches win, then accent-insensitive matches,
then fuzzy similarity.
"""

import unicodedata
from typing import Dict, Optional

import structlog
from rapidfuzz import fuzz, process

from ..models.enums import PaymentMethod

logger = structlog.get_logger()

DEFAULT_SCORE_CUTOFF = 85.0


def _fold(label: str) -> str:
    """Lowercase and strip accents and surrounding whitespace."""
    decomposed = unicodedata.normalize("NFKD", label)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(stripped.lower().split())


_BY_VALUE: Dict[str, PaymentMethod] = {m.value: m for m in PaymentMethod}
_BY_FOLDED: Dict[str, PaymentMethod] = {_fold(m.value): m for m in PaymentMethod}
_BY_FOLDED.update({_fold(m.name.replace("_", " ")): m for m in PaymentMethod})


def resolve_payment_method(
    label: Optional[str],
    score_cutoff: float = DEFAULT_SCORE_CUTOFF,
) -> Optional[PaymentMethod]:
    """
    Map a stored label to a PaymentMethod.

    Returns None for empty or unrecognised labels, which leaves the
    payment slot empty.
    """
    if label is None or not label.strip():
        return None

    label = label.strip()
    if label in _BY_VALUE:
        return _BY_VALUE[label]

    folded = _fold(label)
    if folded in _BY_FOLDED:
        return _BY_FOLDED[folded]

    match = process.extractOne(
        folded,
        list(_BY_FOLDED.keys()),
        scorer=fuzz.ratio,
        score_cutoff=score_cutoff,
    )
    if match is not None:
        method = _BY_FOLDED[match[0]]
        logger.info(
            "Payment method resolved by similarity",
            label=label,
            method=method.value,
            score=round(match[1], 1),
        )
        return method

    logger.warning("Unrecognised payment method label", label=label)
    return None
