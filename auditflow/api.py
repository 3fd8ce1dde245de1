from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field

from auditflow.config import API_HOST, API_PORT, API_TOKEN
from auditflow.engine.report import ReportGenerationError
from auditflow.engine.report_generator import generate_report_async
from auditflow.engine.schemas import AuditResult, BrandConfig
from auditflow.engine.scoring import TIER_COLORS, TIER_THRESHOLDS

logger = logging.getLogger(__name__)


class ReportRequest(BaseModel):
    result: AuditResult = Field(default_factory=AuditResult)
    brand: BrandConfig = Field(default_factory=BrandConfig)


def _validate_api_token(x_api_token: str | None) -> None:
    if API_TOKEN and x_api_token != API_TOKEN:
        raise HTTPException(status_code=401, detail="invalid api token")


def _content_disposition(filename: str) -> str:
    fallback = filename.encode("ascii", "ignore").decode("ascii") or "report.pdf"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


app = FastAPI(title="AuditFlow Report API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.get("/palette")
def palette() -> dict:
    return {
        "thresholds": {tier.value: threshold for threshold, tier in TIER_THRESHOLDS},
        "colors": {tier.value: "#%02X%02X%02X" % rgb for tier, rgb in TIER_COLORS.items()},
    }


@app.post("/report")
async def report_endpoint(
    request: ReportRequest,
    x_api_token: str | None = Header(default=None, alias="X-API-Token"),
) -> Response:
    _validate_api_token(x_api_token)
    try:
        artifact = await generate_report_async(request.result, request.brand)
    except ReportGenerationError as exc:
        logger.error("Report generation failed for %s: %s", request.result.url or "unknown url", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return Response(
        content=artifact.content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": _content_disposition(artifact.filename),
            "X-Report-Pages": str(artifact.page_count),
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=API_HOST, port=API_PORT)
