"""Acquisition and ownership-change signals."""

import logging
from typing import List, Optional

from ..config import MAX_ACQUISITION_SIGNALS
from ..models import AcquisitionSignal
from ..patterns import ACQUISITION_PATTERNS, YEAR_RE, YEAR_WINDOW

logger = logging.getLogger(__name__)


def extract_acquisition_signals(text: str, source_url: str) -> List[AcquisitionSignal]:
    """Match ownership-change phrasings and attach a year found nearby."""
    signals: List[AcquisitionSignal] = []
    for signal_type, pattern in ACQUISITION_PATTERNS:
        for match in pattern.finditer(text):
            window = text[max(0, match.start() - YEAR_WINDOW):match.end() + YEAR_WINDOW]
            year = YEAR_RE.search(window)
            signals.append(AcquisitionSignal(
                text=match.group(0).strip(),
                signal_type=signal_type,
                date_mentioned=year.group(1) if year else None,
                source_url=source_url,
            ))
    signals = signals[:MAX_ACQUISITION_SIGNALS]
    if signals:
        kinds = ", ".join(s.signal_type for s in signals)
        logger.debug(f"    [Extract:Acquisition] Found {len(signals)} signals: {kinds}")
    return signals


def summarize_signals(signals: List[AcquisitionSignal]) -> Optional[str]:
    if not signals:
        return None
    first = signals[0]
    if first.date_mentioned:
        return f"{first.text} ({first.date_mentioned})"
    return first.text
