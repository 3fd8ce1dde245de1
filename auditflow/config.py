from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

ROOT_DIR = Path(__file__).resolve().parent.parent

OUTPUT_DIR = Path(os.getenv("AUDITFLOW_OUTPUT_DIR", str(ROOT_DIR / "outputs")))
LOGO_TIMEOUT_SECONDS = float(os.getenv("AUDITFLOW_LOGO_TIMEOUT", "10"))
BOTTOM_SAFETY_MARGIN_MM = float(os.getenv("AUDITFLOW_BOTTOM_SAFETY_MARGIN", "36"))
MAX_LOGO_BYTES = int(os.getenv("AUDITFLOW_MAX_LOGO_BYTES", str(5 * 1024 * 1024)))
USER_AGENT = os.getenv("AUDITFLOW_USER_AGENT", "AuditFlowReportBot/1.0")

API_TOKEN = os.getenv("API_TOKEN", "").strip()
API_HOST = os.getenv("AUDITFLOW_HOST", "127.0.0.1")
API_PORT = int(os.getenv("AUDITFLOW_PORT", "8000"))
