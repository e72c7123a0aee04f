from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.api import get_dashboard_config
from services.analysis import AnalysisService, build_default_service
from services.dashboard import SAMPLE_SIZES, DashboardConfig, DeviceSort, TimeRange, recompute_view
from services.heatmap import DAY_NAMES, hottest_cells


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def get_service() -> AnalysisService:
    return build_default_service()


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    config: DashboardConfig = Depends(get_dashboard_config),
    service: AnalysisService = Depends(get_service),
) -> HTMLResponse:
    snapshot = service.current()
    view = recompute_view(snapshot, config) if snapshot is not None else None
    hot_spots = []
    if view is not None and view.heatmap is not None:
        hot_spots = hottest_cells([entry.cell for entry in view.heatmap.cells])

    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "snapshot": snapshot,
            "view": view,
            "hot_spots": hot_spots,
            "day_names": DAY_NAMES,
            "sample_sizes": SAMPLE_SIZES,
            "time_ranges": list(TimeRange),
            "device_sorts": list(DeviceSort),
        },
    )
