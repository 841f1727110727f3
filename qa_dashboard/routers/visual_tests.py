"""Visual regression endpoints and the image file server."""

import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import FileResponse

from qa_dashboard.models.checks import BaselineRequest, CaptureRequest
from qa_dashboard.routers.deps import get_browser_manager, get_settings
from qa_dashboard.services.visual_baselines import IMAGE_CONTENT_TYPES, VisualBaselines
from qa_dashboard.utils.errors import ApiError, not_found

logger = logging.getLogger(__name__)
router = APIRouter()
image_router = APIRouter()


def get_visual_baselines(request: Request) -> VisualBaselines:
    """Get or create VisualBaselines instance."""
    if not hasattr(request.app.state, "visual_baselines"):
        app_settings = get_settings(request)
        request.app.state.visual_baselines = VisualBaselines(
            root=app_settings.visual_tests_dir,
            browser_manager=get_browser_manager(request),
            threshold=app_settings.VISUAL_DIFF_THRESHOLD,
            max_diff_ratio=app_settings.VISUAL_MAX_DIFF_RATIO,
        )
    return request.app.state.visual_baselines


def _check_image(baselines: VisualBaselines, raw_path: str):
    try:
        return baselines.image_path(raw_path)
    except PermissionError:
        raise ApiError(403, "Access to the requested image is forbidden")
    except FileNotFoundError:
        raise not_found(f"Image not found: {raw_path}")


@router.get("")
def list_visual_tests(request: Request):
    """Baselines grouped by test name."""
    return {"success": True, "tests": get_visual_baselines(request).list_tests()}


@router.post("/capture")
async def capture_screenshot(request: Request, body: CaptureRequest):
    baselines = get_visual_baselines(request)
    try:
        captured = await baselines.capture(body.url, body.test_name)
    except Exception as e:
        logger.error(f"Screenshot of {body.url} failed: {e}", exc_info=True)
        raise ApiError(500, "Failed to capture screenshot", details=str(e))

    return {"success": True, **captured, "message": "Screenshot captured successfully"}


@router.post("/compare")
def compare_screenshot(request: Request, body: BaselineRequest):
    """Compare an actual screenshot against the newest baseline."""
    baselines = get_visual_baselines(request)
    _check_image(baselines, body.actual_path)

    result = baselines.compare(body.test_name, body.actual_path)
    if not result["success"]:
        raise ApiError(500, "Failed to compare images", details=result["error"])
    return result


@router.post("/update-baseline")
def update_baseline(request: Request, body: BaselineRequest):
    baselines = get_visual_baselines(request)
    _check_image(baselines, body.actual_path)
    return baselines.update_baseline(body.test_name, body.actual_path)


@image_router.get("/image")
@image_router.get("/visual-tests/image")
def serve_image(request: Request, path: str = Query(..., min_length=1, description="Image path")):
    """Serve an image from the visual-tests directory."""
    image = _check_image(get_visual_baselines(request), path)
    media_type = IMAGE_CONTENT_TYPES.get(image.suffix.lower(), "application/octet-stream")
    return FileResponse(
        image,
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=31536000"},
    )
