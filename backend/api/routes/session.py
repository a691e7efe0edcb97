from pathlib import Path
from typing import Literal, Optional

import logging

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from api.schemas import AnalysisLimits, SessionAnalysisResponse, SessionReportResponse
from core.errors import DecoderError, SampleLimitError
from core.models import AnalysisConfig, ParseResult
from services.analysis_service import analyze_fit_bytes
from services.decoder import FitDecoder
from services.report import render_session_report
from services.serialization import to_jsonable


router = APIRouter()

ALLOWED_EXTENSIONS = {".fit", ".fir"}

# Plafond serveur ; l'en-tete max_size ne peut que l'abaisser.
MAX_UPLOAD_BYTES = 50_000_000
UPLOAD_CHUNK_BYTES = 1024 * 1024


def _get_logger(request: Request) -> logging.Logger:
    return request.app.state.logger


def _get_request_id(request: Request) -> str:
    return getattr(getattr(request, "state", None), "request_id", "-")


def get_decoder(request: Request) -> FitDecoder:
    return request.app.state.decoder


def analysis_config(
    ftp_w: Optional[float] = Form(None, gt=0),
    hr_max_bpm: Optional[float] = Form(None, gt=0),
    weight_kg: Optional[float] = Form(None, gt=0),
    power_curve_scan: Literal["adaptive", "legacy"] = Form("adaptive"),
) -> AnalysisConfig:
    return AnalysisConfig(
        ftp_w=ftp_w,
        hr_max_bpm=hr_max_bpm,
        weight_kg=weight_kg,
        power_curve_scan=power_curve_scan,
        strict_sample_limit=True,
    )


async def _read_upload(file: UploadFile, limit: int) -> bytes:
    chunks: list[bytes] = []
    size = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Max size: {limit / (1024 * 1024):.1f}MB",
            )
        chunks.append(chunk)
    return b"".join(chunks)


async def _analyze_upload(
    request: Request,
    file: UploadFile,
    config: AnalysisConfig,
    decoder: FitDecoder,
    max_size: int,
) -> ParseResult:
    logger = _get_logger(request)
    request_id = _get_request_id(request)

    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename")
    extension = Path(file.filename).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file extension. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    file_bytes = await _read_upload(file, min(max_size, MAX_UPLOAD_BYTES))

    logger.info(
        "session_analyze_start",
        extra={
            "request_id": request_id,
            "upload_filename": file.filename,
            "size_bytes": len(file_bytes),
            "ftp_w": config.ftp_w,
            "hr_max_bpm": config.hr_max_bpm,
        },
    )
    try:
        result = await run_in_threadpool(analyze_fit_bytes, file_bytes, config=config, decoder=decoder)
    except DecoderError as e:
        logger.warning("session_decode_failed", extra={"request_id": request_id, "error": str(e)})
        raise HTTPException(status_code=400, detail=str(e))
    except SampleLimitError as e:
        logger.warning("session_sample_limit", extra={"request_id": request_id, "error": str(e)})
        raise HTTPException(status_code=413, detail=str(e))
    except Exception:
        logger.exception("session_analyze_failed", extra={"request_id": request_id})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to analyze session (request_id={request_id})",
        )

    request.state.records_total = len(result.raw.records)
    logger.info(
        "session_analyze_ok",
        extra={"request_id": request_id, "records": request.state.records_total},
    )
    return result


@router.post("/session/analyze", response_model=SessionAnalysisResponse)
async def analyze_session_endpoint(
    request: Request,
    file: UploadFile = File(...),
    config: AnalysisConfig = Depends(analysis_config),
    decoder: FitDecoder = Depends(get_decoder),
    records_limit: Optional[int] = None,
    max_size: int = Header(MAX_UPLOAD_BYTES),
):
    """Decode un fichier FIT et retourne les metriques de seance"""
    result = await _analyze_upload(request, file, config, decoder, max_size)

    records = list(result.raw.records)
    total = len(records)
    if records_limit is not None and records_limit >= 0:
        records = records[:records_limit]

    return SessionAnalysisResponse(
        device=to_jsonable(result.device),
        session=to_jsonable(result.session),
        env=to_jsonable(result.env),
        power_zones=to_jsonable(result.power_zones),
        hr_zones=to_jsonable(result.hr_zones),
        power_profile=to_jsonable(result.power_profile),
        decoupling=to_jsonable(result.decoupling),
        efficiency=to_jsonable(result.efficiency),
        records=to_jsonable(records),
        sessions=to_jsonable(list(result.raw.sessions)),
        devices=to_jsonable(list(result.raw.devices)),
        limits=AnalysisLimits(
            records_total=total,
            records_returned=len(records),
            truncated=len(records) < total,
        ),
    )


@router.post("/session/report", response_model=SessionReportResponse)
async def session_report_endpoint(
    request: Request,
    file: UploadFile = File(...),
    config: AnalysisConfig = Depends(analysis_config),
    decoder: FitDecoder = Depends(get_decoder),
    include_context: bool = True,
    max_size: int = Header(MAX_UPLOAD_BYTES),
):
    """Rendu markdown de la seance, destine au service de resume IA"""
    result = await _analyze_upload(request, file, config, decoder, max_size)
    return SessionReportResponse(report=render_session_report(result, include_context=include_context))
