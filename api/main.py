"""FastAPI service exposing the market data transformation pipeline."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from jobs.config import load_settings
from pipelines.adapters import get_symbol_from_url, transform_for_widget
from pipelines.errors import RuleConfigurationError
from pipelines.mapper import SchemaMapper
from pipelines.model import TRANSFORMATION_VERSION
from pipelines.schema import print_schema
from pipelines.service import TransformationService
from pipelines.sources.registry import detect_source_identifier
from pipelines.views import VIEW_TYPES, render_view

load_dotenv()

logger = logging.getLogger(__name__)

ViewType = Literal["table", "chart", "card"]


class PayloadRequest(BaseModel):
    payload: Any = Field(None, description="Decoded JSON response from a data provider.")


class TransformRequest(PayloadRequest):
    source: Optional[str] = Field(None, description="Source identifier used for labelling.")
    url: Optional[str] = Field(None, description="Request URL; used to detect the source when absent.")
    view: Optional[ViewType] = Field(None, description="Also render one view of the dataset.")


class AdapterRequest(PayloadRequest):
    url: Optional[str] = Field(None, description="Request URL; used to extract the symbol.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    try:
        rule_sets = settings.rule_sets()
    except RuleConfigurationError:
        logger.exception("Invalid field mapping rules; refusing to start.")
        raise
    app.state.settings = settings
    app.state.service = TransformationService(
        rule_sets=rule_sets,
        max_depth=settings.schema_max_depth,
        tuple_max_length=settings.tuple_max_length,
    )
    yield


app = FastAPI(title="Market Data Transform API", version=TRANSFORMATION_VERSION, lifespan=lifespan)


def _configure_cors() -> None:
    raw_origins = os.getenv("API_CORS_ORIGINS", "*")
    origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )


_configure_cors()


def get_service(request: Request) -> TransformationService:
    return request.app.state.service


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "version": TRANSFORMATION_VERSION}


@app.post("/transform")
def transform_payload(
    body: TransformRequest, service: TransformationService = Depends(get_service)
) -> dict[str, Any]:
    source = body.source or (detect_source_identifier(body.url) if body.url else "unknown_api")
    result = service.transform(body.payload, source)
    response = result.model_dump(mode="json")
    if body.view and result.success:
        response["view"] = render_view(result.data, body.view)
    return response


@app.post("/schema")
def describe_schema(
    body: PayloadRequest, service: TransformationService = Depends(get_service)
) -> dict[str, Any]:
    schema = service.generator.generate(body.payload)
    return {"schema": schema.model_dump(mode="json"), "text": print_schema(schema)}


@app.post("/mapping")
def describe_mapping(
    body: PayloadRequest, service: TransformationService = Depends(get_service)
) -> dict[str, Any]:
    schema = service.generator.generate(body.payload)
    if not schema.fields:
        raise HTTPException(status_code=422, detail="Payload has no fields to map.")
    mapper = SchemaMapper(schema, rule_sets=service.rule_sets)
    template = mapper.generate_mapping_template()
    columns = mapper.generate_column_definitions(template)
    return {
        "template": template.model_dump(mode="json"),
        "columns": [column.model_dump(mode="json") for column in columns],
    }


@app.post("/adapters/{widget_type}")
def adapt_payload(widget_type: str, body: AdapterRequest) -> dict[str, Any]:
    if widget_type not in VIEW_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported widget type '{widget_type}'. Expected one of: {', '.join(VIEW_TYPES)}",
        )
    data = transform_for_widget(body.payload, widget_type)
    if isinstance(data, list):
        data = [item.model_dump(mode="json") if isinstance(item, BaseModel) else item for item in data]
    return {
        "widget_type": widget_type,
        "symbol": get_symbol_from_url(body.url) if body.url else None,
        "data": data,
    }
