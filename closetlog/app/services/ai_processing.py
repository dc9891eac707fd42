"""Vision detection adapter.

Sends an outfit photo to an OpenAI multimodal model and turns the JSON reply
into ``DetectedGarmentDescription`` objects. Analysis creates no state, so a
failed call can simply be retried by the client.
"""

import json
from typing import Any, List, Optional
from openai import AsyncOpenAI, OpenAIError

from app.core.config import get_config_manager, get_settings
from app.core.exceptions import UpstreamServiceError, ValidationError
from app.core.logging import get_logger
from app.models.domain.analysis import DetectedGarmentDescription
from app.utils.image_helpers import detect_base64_mime_type, strip_data_url

# Initialize components
logger = get_logger(__name__)

SYSTEM_PROMPT = """You are a fashion analysis AI specialized in identifying clothing items in photos. Your task is to analyze outfit photos and identify every individual garment/clothing item visible.

IMPORTANT INSTRUCTIONS:
- Look carefully at the ENTIRE image for any clothing items
- Include items that may be partially visible
- Be thorough - it's better to identify more items than fewer
- Consider all types of clothing: shirts, pants, skirts, dresses, jackets, coats, shoes, hats, scarves, jewelry, bags, watches, belts, etc.

For EACH garment you detect, provide:
1. name: A descriptive name (e.g., "Navy blue cotton crew neck t-shirt", "Black leather ankle boots")
2. category: EXACTLY one of: tops, bottoms, dresses, outerwear, shoes, accessories, pijama
3. season: EXACTLY one of: mid-season, summer, winter, all-season
4. description: A brief description of the item's appearance (color, material, style, pattern)

You MUST return a JSON object with a "garments" key containing an array of detected items.
Example response format: {"garments": [{"name": "...", "category": "...", "season": "...", "description": "..."}]}

If you see a person wearing clothes, identify ALL visible clothing items.
Even if the image quality is not perfect, do your best to identify the clothing items."""

USER_PROMPT = (
    "Please analyze this outfit photo and identify ALL the garments and clothing items visible. "
    "List every piece of clothing you can see, including shoes and accessories. "
    "Return your response as a JSON object with a \"garments\" array."
)

# Keys models have been seen to wrap the detection list in
RESPONSE_KEYS = ("garments", "items", "clothing", "clothes")


def extract_detection_list(payload: Any) -> List[Any]:
    """Find the list of raw detections in a parsed model reply."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in RESPONSE_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def parse_detections(content: Optional[str]) -> List[DetectedGarmentDescription]:
    """Parse model output into detections; unusable content is an upstream failure."""
    if not content:
        raise UpstreamServiceError("empty response from vision model")
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise UpstreamServiceError(f"unparseable response from vision model: {e}")

    detections = []
    for raw in extract_detection_list(payload):
        if isinstance(raw, dict):
            detections.append(DetectedGarmentDescription.model_validate(raw))
    return detections


class VisionService:
    """Detects garments in outfit photos with an OpenAI vision model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        max_tokens: int = 1000,
        client: Optional[AsyncOpenAI] = None
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.client = client
        if self.client is None and api_key:
            self.client = AsyncOpenAI(api_key=api_key)

    @property
    def status(self) -> str:
        return "configured" if self.client is not None else "not_configured"

    @staticmethod
    def build_image_content(image_base64: Optional[str], image_url: Optional[str]) -> dict:
        if image_base64:
            mime_type = detect_base64_mime_type(image_base64)
            url = f"data:{mime_type};base64,{strip_data_url(image_base64)}"
        elif image_url:
            url = image_url
        else:
            raise ValidationError("Either image_base64 or image_url is required", field="image")
        return {"type": "image_url", "image_url": {"url": url, "detail": "high"}}

    async def detect_garments(
        self,
        image_base64: Optional[str] = None,
        image_url: Optional[str] = None
    ) -> List[DetectedGarmentDescription]:
        """Detect garments in a photo given as base64 data or a URL.

        Args:
            image_base64: Base64 encoded image, optionally a data URL
            image_url: Publicly reachable image URL

        Returns:
            Detected garments in the order the model listed them; may be empty

        Raises:
            ValidationError: neither image source was given
            UpstreamServiceError: the model call failed or returned unusable content
        """
        image_content = self.build_image_content(image_base64, image_url)
        if self.client is None:
            raise UpstreamServiceError("vision model is not configured")

        logger.info(
            "Analyzing outfit image",
            has_base64=bool(image_base64),
            has_url=bool(image_url),
            base64_length=len(image_base64) if image_base64 else 0
        )

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": USER_PROMPT},
                            image_content
                        ]
                    }
                ],
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"}
            )
        except OpenAIError as e:
            logger.error("Vision model call failed", error=e)
            raise UpstreamServiceError(str(e))

        content = response.choices[0].message.content if response.choices else None
        detections = parse_detections(content)
        logger.info(
            "Vision analysis finished",
            detected=len(detections),
            names=[d.name for d in detections]
        )
        return detections

    async def close(self):
        if self.client is not None:
            await self.client.close()


async def create_vision_service() -> VisionService:
    """Build the vision service, resolving the API key through Key Vault when configured."""
    settings = get_settings()
    api_key = await get_config_manager().get_secret("OPENAI_API_KEY")
    return VisionService(
        api_key=api_key,
        model=settings.VISION_MODEL,
        max_tokens=settings.VISION_MAX_TOKENS
    )
