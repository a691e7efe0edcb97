"""Points d'entree backend de haut niveau (sans couche UI).

Ce module enchaine decodage FIT et moteur d'analyse. Il travaille sur des
bytes et renvoie des objets metier ; la serialisation JSON est faite par
services.serialization.

Ce module est consomme par l'API (FastAPI).
"""

from __future__ import annotations

import logging
from typing import IO

from core.models import AnalysisConfig, ParseResult
from core.session import analyze_session
from services.decoder import DecodedActivity, FitDecoder


logger = logging.getLogger("ridescope.analysis")


def analyze_decoded(decoded: DecodedActivity, config: AnalysisConfig | None = None) -> ParseResult:
    return analyze_session(
        decoded.samples,
        sessions=decoded.sessions,
        devices=decoded.devices,
        activities=decoded.activities,
        file_id=decoded.file_id,
        config=config,
    )


def analyze_fit_bytes(
    data: bytes | IO[bytes],
    *,
    config: AnalysisConfig | None = None,
    decoder: FitDecoder | None = None,
) -> ParseResult:
    """Decode puis analyse un fichier FIT.

    Les erreurs du decodeur (DecoderError) remontent telles quelles : dans ce
    cas le moteur ne tourne pas.
    """

    decoder = decoder or FitDecoder()
    decoded = decoder.decode(data)
    logger.info("fit_decoded samples=%d sessions=%d", len(decoded.samples), len(decoded.sessions))
    return analyze_decoded(decoded, config)
