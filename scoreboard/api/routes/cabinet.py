"""Cabinet frontend and table catalog routes."""
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query

from scoreboard.api.deps import AppServices, get_services
from scoreboard.api.schemas import CabinetSearchRequest, TableResponse
from scoreboard.models.identifiers import WebTableId
from scoreboard.services.clients.errors import CabinetRequestError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cabinet"])


@router.get("/cabinet/current")
async def current_table(services: AppServices = Depends(get_services)) -> Dict:
    """The table selected in the cabinet frontend right now."""
    try:
        cabinet_id = await services.frontend.current_table_id()
    except CabinetRequestError as e:
        logger.warning(f"Frontend unreachable: {e}")
        raise HTTPException(status_code=502, detail=f"Frontend unreachable: {e.url}")

    if cabinet_id is None:
        return {"table": None}
    table = services.model.table(cabinet_id)
    return {
        "cabinet_id": cabinet_id.id,
        "table": TableResponse.from_table(table) if table else None,
        "wheel_image_url": services.cabinet.wheel_image_url(cabinet_id),
    }


@router.post("/cabinet/search")
async def frontend_search(
    request: CabinetSearchRequest,
    services: AppServices = Depends(get_services),
) -> Dict:
    try:
        await services.frontend.search(request.text)
    except CabinetRequestError as e:
        raise HTTPException(status_code=502, detail=f"Frontend unreachable: {e.url}")
    return {"status": "ok", "text": request.text}


@router.get("/catalog")
async def search_catalog(
    q: str = Query(..., min_length=2, description="Table name fragment"),
    limit: int = Query(50, ge=1, le=500),
    services: AppServices = Depends(get_services),
) -> Dict:
    try:
        entries = await services.catalog.find(q)
    except CabinetRequestError as e:
        logger.warning(f"Catalog unavailable: {e}")
        raise HTTPException(status_code=502, detail=f"Catalog unavailable: {e.url}")

    results: List[Dict] = []
    for entry in entries[:limit]:
        installed = services.model.tables_by_web_id(WebTableId(entry.id))
        results.append({
            "id": entry.id,
            "title": entry.title,
            "manufacturer": entry.manufacturer,
            "year": entry.year,
            "designers": entry.designers,
            "image_url": entry.image_url,
            "installed": [TableResponse.from_table(table) for table in installed],
        })
    return {"count": len(entries), "results": results}
