"""FastAPI endpoint for outfit photo analysis.

Detection only: nothing is stored. The response lists every detected garment
with its closet match and whether it starts selected; the client then posts
its choices to ``/outfits/reconcile``.
"""

from fastapi import APIRouter, Depends

# Internal imports
from app.api.dependencies import (
    get_current_user,
    get_garment_repository,
    get_reconciler,
    get_vision_service
)
from app.core.config import ConfigurationManager, get_config_manager
from app.core.exceptions import ValidationError
from app.core.logging import get_logger, monitor_performance
from app.database.repositories.garments import GarmentRepository
from app.services.ai_processing import VisionService
from app.services.matcher import normalize_category, normalize_season
from app.services.reconciler import OutfitReconciler, selected_indices
from app.models.domain.analysis import AnalyzeRequest, AnalyzeResponse, DetectedGarmentResponse
from app.models.domain.garment import GarmentResponse

# Initialize router and logger
router = APIRouter(tags=["analysis"])
logger = get_logger(__name__)

@router.post("/analyze-outfit", response_model=AnalyzeResponse)
@monitor_performance("analyze_outfit")
async def analyze_outfit(
    request_data: AnalyzeRequest,
    user_id: str = Depends(get_current_user),
    garments: GarmentRepository = Depends(get_garment_repository),
    vision: VisionService = Depends(get_vision_service),
    reconciler: OutfitReconciler = Depends(get_reconciler),
    config: ConfigurationManager = Depends(get_config_manager)
):
    """Detect garments in an outfit photo and match them against the closet."""
    if not request_data.image_base64 and not request_data.image_url:
        raise ValidationError("Either image_base64 or image_url is required", field="image")

    detections = []
    if config.feature_enabled("ENABLE_VISION_ANALYSIS"):
        detections = await vision.detect_garments(
            image_base64=request_data.image_base64,
            image_url=request_data.image_url
        )
    else:
        logger.info("Vision analysis disabled, falling back to manual selection", user_id=user_id)

    closet = await garments.find_closet(user_id) if detections else []
    results = reconciler.auto_select(detections, closet)
    selected = selected_indices(results)

    detected = []
    for index, result in results.items():
        detection = result.detection
        detected.append(DetectedGarmentResponse(
            index=index,
            name=detection.name,
            category=normalize_category(detection.category),
            season=normalize_season(detection.season),
            description=detection.description,
            matched_garment=GarmentResponse.model_validate(result.garment) if result.matched else None,
            confidence=result.confidence,
            selected=index in selected
        ))

    logger.info(
        "Outfit analyzed",
        user_id=user_id,
        detected=len(detected),
        matched=len(selected),
        closet_size=len(closet)
    )
    return AnalyzeResponse(
        detected_garments=detected,
        total_detected=len(detected),
        matched_count=len(selected),
        manual_selection=not detected
    )
