"""Legacy capital-divisions HTTP service.

A tiny file-backed API kept for installs that still mirror divisions
to a local server. Divisions live in one JSON file ({"divisions": [...]})
that is seeded with the defaults on first access.
"""

import json
import math
import time
from pathlib import Path
from typing import Any, Optional

import fastapi
import structlog
import uvicorn
from fastapi import Request
from fastapi.middleware import cors
from fastapi.responses import JSONResponse

from financeflow.config import get_settings
from financeflow.models import default_divisions

logger = structlog.get_logger(__name__)

DEFAULT_COLOR = "#10B981"


def _to_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def sanitize_divisions(raw: list) -> list[dict]:
    """Coerce each entry's fields to the stored types, filling defaults."""
    clean = []
    for entry in raw:
        d = entry if isinstance(entry, dict) else {}
        clean.append({
            "id": str(d["id"]) if d.get("id") is not None else str(int(time.time() * 1000)),
            "name": str(d["name"]) if d.get("name") is not None else "",
            "percentage": _to_number(d["percentage"]) if d.get("percentage") is not None else 0.0,
            "color": str(d["color"]) if d.get("color") is not None else DEFAULT_COLOR,
        })
    return clean


class DivisionsFile:
    """The JSON file holding the persisted divisions."""

    def __init__(self, path: str):
        self.path = Path(path)

    def ensure(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            seed = [
                {"id": d.id, "name": d.name, "percentage": d.percentage, "color": d.color}
                for d in default_divisions()
            ]
            self.write(seed)

    def read(self) -> list[dict]:
        self.ensure()
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return data.get("divisions") or []

    def write(self, divisions: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"divisions": divisions}, indent=2), encoding="utf-8")


def create_app(data_file: Optional[str] = None) -> fastapi.FastAPI:
    """Create and configure the legacy FastAPI application."""
    app = fastapi.FastAPI(
        title="FinanceFlow Legacy API",
        description="File-backed capital divisions",
        version="1.0.0",
    )

    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    divisions_file = DivisionsFile(data_file or get_settings().legacy_api.data_file)
    app.state.divisions_file = divisions_file

    @app.get("/api/capital-divisions")
    async def read_divisions():
        try:
            divisions = divisions_file.read()
        except (OSError, ValueError) as e:
            logger.error("legacy_read_failed", error=str(e))
            return JSONResponse(status_code=500, content={"error": "Failed to read divisions"})
        return {"divisions": divisions}

    @app.post("/api/capital-divisions")
    async def write_divisions(request: Request):
        try:
            body = await request.json()
        except ValueError:
            body = None
        divisions = body.get("divisions") if isinstance(body, dict) else None
        if not isinstance(divisions, list):
            return JSONResponse(status_code=400, content={"error": "divisions must be an array"})

        clean = sanitize_divisions(divisions)
        try:
            divisions_file.write(clean)
        except OSError as e:
            logger.error("legacy_write_failed", error=str(e))
            return JSONResponse(status_code=500, content={"error": "Failed to write divisions"})
        return {"divisions": clean}

    return app


def main() -> None:
    """Run the legacy service with uvicorn."""
    settings = get_settings().legacy_api
    uvicorn.run(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
