"""Prompts and the structured response shape for the Gemini models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from seo_geotagger.core.models import MetadataRecord


class MetadataResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    alt_text: str = Field(alias="altText")
    caption: str
    tags: list[str]

    @field_validator("name", "description", "alt_text", "caption")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("tags")
    @classmethod
    def _has_tags(cls, value: list[str]) -> list[str]:
        value = [t.strip() for t in value if t and t.strip()]
        if not value:
            raise ValueError("at least one tag is required")
        return value

    def to_record(self) -> MetadataRecord:
        return MetadataRecord(
            name=self.name,
            description=self.description,
            alt_text=self.alt_text,
            caption=self.caption,
            tags=tuple(self.tags),
        )


# OpenAPI subset understood by generation_config.response_schema
RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING"},
        "description": {"type": "STRING"},
        "altText": {"type": "STRING"},
        "caption": {"type": "STRING"},
        "tags": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["name", "description", "altText", "caption", "tags"],
}


def metadata_prompt(business_name: str) -> str:
    return f"""
You are an expert SEO and digital marketing assistant for an appliance repair business named "{business_name}". Analyze the provided image and generate the following distinct metadata components. Each component must be tailored for its specific purpose.

**Important Rule for Appliance Type:** When identifying the appliance, use a generic but descriptive name (e.g., "display refrigerator," "commercial freezer," "stacked laundry machine"). Avoid being overly specific about what the appliance might contain (e.g., prefer "display refrigerator" over "wine cooler"). Apply this rule to all generated fields below.

1. **SEO Filename (name)**: A concise, SEO-friendly filename without extension, in one of two formats:
   - brand visible: `[brand-name]-[appliance-type]-[full-business-name-slug]`
   - brand not visible: `[appliance-type]-[full-business-name-slug]`
   Use the brand ONLY if clearly visible. The business slug is "{business_name}" lowercased and hyphenated.
   Do NOT include generic words like "repair" or "service" unless they are part of the business name slug.

2. **Alt Text (altText)**: A concise, literal description of the image for accessibility (WCAG compliant). Describe exactly what is visible. Avoid marketing language.

3. **SEO Description (description)**: One to two sentences optimized for search engines, naturally incorporating "appliance repair", "commercial" and "domestic" services along with what is depicted.

4. **Social Media Caption (caption)**: An engaging, friendly caption for Instagram or Facebook. It can include a question or a brief customer-centric tip.

5. **Tags (tags)**: 5-10 relevant SEO keywords as a JSON array of strings. This list MUST include "{business_name}", "commercial appliance repair" and "domestic appliance repair". Other tags should be specific to the appliance or service shown.
""".strip()


ENHANCE_PROMPT = (
    "Enhance this image to improve its quality. Make it look cleaner, sharper, "
    "and more vibrant without altering the core subject."
)

COMPOSITE_PROMPT = """
You are an expert photo editor. Extract the person from the SECOND image and add them to the FIRST image.

**Instructions:**
- Keep the background, room, and appliances from the FIRST image exactly as they are
- Extract only the person from the SECOND image
- Position the person naturally next to the appliance
- Make it look realistic by matching lighting, shadows, and colors
- The person should look like they were actually there in the original scene
""".strip()
