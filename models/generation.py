"""
Generation models for Doveable: the response contract the model must satisfy
and the typed code bundle the rest of the app works with.
"""
import base64
import binascii
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional
from google.genai import types


class Attachment(BaseModel):
    """
    A user-supplied file sent along with a prompt, usually an image used as a
    visual reference. ``data_url`` is a ``data:<mime>;base64,<payload>`` URL.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str
    data_url: str = Field(..., alias="dataUrl")
    type: str = Field(..., description="Declared MIME type, e.g. image/png")

    @field_validator("data_url")
    @classmethod
    def _check_base64(cls, value: str) -> str:
        _, sep, encoded = value.partition(",")
        try:
            base64.b64decode(encoded if sep else value, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("dataUrl must carry base64-encoded data")
        return value

    @property
    def is_image(self) -> bool:
        return self.type.startswith("image/")

    def payload(self) -> bytes:
        """Decoded bytes of the data URL."""
        _, sep, encoded = self.data_url.partition(",")
        return base64.b64decode(encoded if sep else self.data_url)


class GeneratedCode(BaseModel):
    """
    The code bundle produced by one generation. Serialised in camelCase for
    the browser client.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = ""
    plan: str = ""
    html: str = ""
    css: str = ""
    javascript: str = ""
    external_css: List[str] = []
    external_js: List[str] = []


class GeneratedCodePayload(BaseModel):
    """
    Shape of the JSON object the generation backend must return.

    String fields are required. The URL lists are part of the contract too,
    but a reply that leaves them out (or sends null) is read as empty.
    """
    title: str
    plan: str
    html_code: str
    css_code: str
    js_code: str
    external_css_files: List[str] = []
    external_js_files: List[str] = []

    @field_validator("external_css_files", "external_js_files", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value

    def to_generated_code(self) -> GeneratedCode:
        return GeneratedCode(
            title=self.title,
            plan=self.plan,
            html=self.html_code,
            css=self.css_code,
            javascript=self.js_code,
            external_css=list(self.external_css_files),
            external_js=list(self.external_js_files),
        )


REQUIRED_RESPONSE_FIELDS = [
    "title",
    "plan",
    "html_code",
    "css_code",
    "js_code",
    "external_css_files",
    "external_js_files",
]

# Constrained-output schema sent with every generation request
RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "title": types.Schema(
            type=types.Type.STRING,
            description="A short, descriptive title for the web page.",
        ),
        "plan": types.Schema(
            type=types.Type.STRING,
            description="A step-by-step plan for the changes or creation, formatted as a bulleted list string (e.g., '* Item 1\\n* Item 2').",
        ),
        "html_code": types.Schema(
            type=types.Type.STRING,
            description="The complete, updated HTML code for the body of the page.",
        ),
        "css_code": types.Schema(
            type=types.Type.STRING,
            description="The complete, updated CSS code for the styling. Use modern design principles and ensure it is responsive.",
        ),
        "js_code": types.Schema(
            type=types.Type.STRING,
            description="The complete, updated JavaScript code for interactivity. Can be empty if not needed.",
        ),
        "external_css_files": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
            description="An array of CDN URLs for any external CSS libraries to include (e.g., Google Fonts, Font Awesome). Can be empty.",
        ),
        "external_js_files": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
            description="An array of CDN URLs for any external JavaScript libraries to include (e.g., jQuery, GSAP). Can be empty.",
        ),
    },
    required=REQUIRED_RESPONSE_FIELDS,
)


class GenerateRequest(BaseModel):
    """
    Body of ``POST /api/generate``.
    """
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(default="", description="What the user wants built or changed")
    attachment: Optional[Attachment] = None
    existing_code: Optional[GeneratedCode] = Field(default=None, alias="existingCode")
    personalization_context: str = Field(default="", alias="learningContext")
