"""Prompt text used by the image and text requests."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict


class StudioMode(str, Enum):
    GENERATE = "generate"
    RESTORE = "restore"


IDENTITY_SYSTEM_INSTRUCTION = (
    "Act as an expert AI photorealism and identity preservation generator. Your EXTREME AND ABSOLUTE "
    "PRIMARY TASK is to preserve the face, identity, and likeness of the person from the reference image "
    "in all outputs, regardless of the prompt content. You must ensure the person's face (head and neck) "
    "is strictly maintained and recognizable in EVERY generated image. For each variation, adapt the "
    "setting, lighting, clothing, body posture, and camera angle as requested by the user prompt, while "
    "KEEPING THE PERSON AS THE CENTRAL SUBJECT. The output image MUST contain the full face of the "
    "reference person. Do not generate generic images or images where the person's identity is "
    "compromised. IMPORTANT: Ensure that the generated image is visually distinct from the reference "
    "input image, particularly in the background, clothing, and overall composition, to prevent image "
    "recitation."
)

QUALITY_SUFFIX = ", high-resolution image, photorealistic, dramatic lighting, 8k, digital masterpiece."

RESTORE_PROMPT = (
    "Restore and enhance this photo. Repair any damage, improve sharpness, contrast and colors. "
    "Increase the resolution to the highest possible quality."
)

# One hint per variation index; indices past the list reuse the last entry.
_VARIATION_HINTS = (
    "Keep the composition close to the request with a natural, relaxed pose.",
    "Change the pose and camera angle noticeably compared to the previous variation.",
    "Use a different lighting setup and adjust the clothing slightly compared to the previous variations.",
)

ENHANCE_SYSTEM_PROMPT = (
    "You are an expert prompt engineer for photorealistic image generation. Your task is to take a short, "
    "simple user prompt and expand it into a detailed, creative, and highly descriptive prompt for a "
    "generative AI model, ensuring it includes elements like lighting, style, camera angle, and artistic "
    "quality. Output only the enhanced prompt text, without any introductory or concluding remarks."
)

CAPTION_SYSTEM_PROMPT = (
    "You are a social media manager specializing in visual content. Your task is to analyze the provided "
    "image (the reference person) and the user's creative prompt to generate compelling, short social media "
    "captions and a set of relevant hashtags. The captions should reflect the style and theme requested in "
    "the prompt. Output the response STRICTLY as a JSON object following the provided schema."
)

BACKGROUND_SYSTEM_PROMPT = (
    "You are a visual stylist and background expert. Analyze the person's clothing, style, pose, and color "
    "palette in the image. Based on this analysis, generate 5 distinct, high-detail background scenes "
    "suitable for image generation prompts. The suggestions should include a mix of contrasting (e.g., "
    "modern person in ancient setting) and complementary (e.g., formal person in a luxurious setting) "
    "environments. Output ONLY a numbered list of the 5 suggestions, without any introductory or "
    "concluding text."
)

BACKGROUND_QUERY = "Analyze this person and suggest 5 photorealistic background prompts."

CAPTION_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "Inspiring": {"type": "STRING", "description": "An inspiring caption related to the theme of the image."},
        "Funny": {"type": "STRING", "description": "A witty or humorous caption."},
        "Mysterious": {"type": "STRING", "description": "A caption that builds suspense or intrigue."},
        "Hashtags": {
            "type": "STRING",
            "description": "A list of 5 to 10 relevant, popular hashtags separated by spaces.",
        },
    },
    "propertyOrdering": ["Inspiring", "Funny", "Mysterious", "Hashtags"],
}


def compose_prompt(mode: StudioMode | str, prompt: str | None) -> str:
    """Build the base prompt sent for every variation in the given mode."""

    mode = StudioMode(mode)
    if mode is StudioMode.RESTORE:
        return RESTORE_PROMPT
    text = (prompt or "").strip()
    if not text:
        return ""
    return text.rstrip(".,; ") + QUALITY_SUFFIX


def variation_suffix(variation_index: int, attempt: int) -> str:
    hint = _VARIATION_HINTS[min(variation_index, len(_VARIATION_HINTS)) - 1]
    return f" Create variation no. {variation_index} of the request. {hint} (Attempt {attempt})"


def enhance_query(prompt: str) -> str:
    return (
        "Expand this prompt into a detailed, high-quality, single-paragraph description suitable for "
        f'image-to-image generation: "{prompt}"'
    )


def caption_query(prompt: str) -> str:
    return (
        f'Analyze the person in the image and the following creative description/goal: "{prompt}". '
        "Generate captions (inspiring, funny, mysterious) and a list of 5-10 trending hashtags based on "
        "this combination."
    )


__all__ = [
    "BACKGROUND_QUERY",
    "BACKGROUND_SYSTEM_PROMPT",
    "CAPTION_SCHEMA",
    "CAPTION_SYSTEM_PROMPT",
    "ENHANCE_SYSTEM_PROMPT",
    "IDENTITY_SYSTEM_INSTRUCTION",
    "QUALITY_SUFFIX",
    "RESTORE_PROMPT",
    "StudioMode",
    "caption_query",
    "compose_prompt",
    "enhance_query",
    "variation_suffix",
]
