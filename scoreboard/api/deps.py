"""
Request dependencies.

The lifespan handler builds one AppServices and stores it on app.state;
routes reach it through these dependencies so tests can override them.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request

from scoreboard.models.identifiers import CabinetId
from scoreboard.models.score_model import ScoreModel
from scoreboard.models.table import Table
from scoreboard.services.clients.pinball_db import PinballDBClient
from scoreboard.services.clients.pinup_popper import PinupPopperClient
from scoreboard.services.clients.vpin_studio import VPinStudioClient
from scoreboard.services.sync.orchestrator import ScanOrchestrator
from scoreboard.storage.document import DocumentStore, ScoreboardDocument


@dataclass
class AppServices:
    document: ScoreboardDocument
    orchestrator: ScanOrchestrator
    cabinet: VPinStudioClient
    frontend: PinupPopperClient
    catalog: PinballDBClient
    store: Optional[DocumentStore] = None

    @property
    def model(self) -> ScoreModel:
        return self.document.model

    async def commit(self) -> None:
        """Bump the serial number and persist after a mutating request."""
        await self.orchestrator.commit()

    async def close(self) -> None:
        await self.cabinet.close()
        await self.frontend.close()
        await self.catalog.close()


def get_services(request: Request) -> AppServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return services


def get_model(services: AppServices = Depends(get_services)) -> ScoreModel:
    return services.model


def get_orchestrator(services: AppServices = Depends(get_services)) -> ScanOrchestrator:
    """Dependency to get the scan orchestrator instance."""
    return services.orchestrator


def get_table_or_404(cabinet_id: str, model: ScoreModel = Depends(get_model)) -> Table:
    table = model.table(CabinetId(cabinet_id))
    if table is None:
        raise HTTPException(status_code=404, detail=f"Table '{cabinet_id}' not found")
    return table
