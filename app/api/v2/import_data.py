"""Data Import API - CSV template downloads.

The bulk endpoints themselves live with their resources (inbound, outbound,
products); clients parse their CSV files and post the rows as JSON.
"""
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse
import logging
import io

from app.api.deps import CurrentUser
from app.services.batch_importer import ImportType, TEMPLATES, generate_csv_template

logger = logging.getLogger(__name__)
router = APIRouter()

BULK_ENDPOINTS = {
    ImportType.INBOUND: "/api/v2/inbound/bulk",
    ImportType.OUTBOUND: "/api/v2/outbound/bulk",
    ImportType.PRODUCTS: "/api/v2/products/bulk",
}


def _parse_import_type(value: str) -> ImportType:
    try:
        return ImportType(value)
    except ValueError:
        valid = ", ".join(kind.value for kind in ImportType)
        raise HTTPException(status_code=400, detail=f"Unknown import type '{value}'. Expected one of: {valid}")


@router.get("/templates")
async def list_available_templates(current_user: CurrentUser):
    """Each import type with its columns, template download and bulk upload endpoint."""
    templates = []
    for kind in ImportType:
        templates.append({
            "type": kind.value,
            "columns": TEMPLATES[kind],
            "download_url": f"/api/v2/import/templates/{kind.value}",
            "upload_url": BULK_ENDPOINTS[kind],
        })
    return {"templates": templates}


@router.get("/templates/{import_type}")
async def download_template(
    import_type: str,
    current_user: CurrentUser,
    include_examples: bool = Query(False, description="Append one example row"),
):
    kind = _parse_import_type(import_type)
    content = generate_csv_template(kind, include_examples=include_examples)
    logger.debug(f"Template {kind.value} downloaded by user {current_user.id}")

    return StreamingResponse(
        io.BytesIO(content.encode()),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={kind.value}_template.csv"},
    )
