"""Request and response models for the generate endpoint.

Inbound bodies are ``{"step": ..., "payload": ...}``. ``step`` selects the
payload shape, so the three request variants form a discriminated union and
each branch receives a fully validated payload.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .errors import InvalidPayload, InvalidStep

GENERATE_TEXT = "generateText"
GENERATE_IMAGE = "generateImage"
DESCRIBE_IMAGE = "describeImage"
STEPS = (GENERATE_TEXT, GENERATE_IMAGE, DESCRIBE_IMAGE)


class GenerateTextPayload(BaseModel):
    system_prompt: str = Field(..., alias="systemPrompt", description="System-level instruction")
    user_query: str = Field(..., alias="userQuery", description="Sole user message")


class GenerateImagePayload(BaseModel):
    prompt: str = Field(..., description="Image generation prompt")


class DescribeImagePayload(BaseModel):
    system_prompt: str = Field(..., alias="systemPrompt", description="Instruction sent alongside the image")
    base64_data: str = Field(..., alias="base64Data", description="Base64-encoded image bytes")


class GenerateTextRequest(BaseModel):
    step: Literal["generateText"]
    payload: GenerateTextPayload


class GenerateImageRequest(BaseModel):
    step: Literal["generateImage"]
    payload: GenerateImagePayload


class DescribeImageRequest(BaseModel):
    step: Literal["describeImage"]
    payload: DescribeImagePayload


GenerationRequest = Annotated[
    Union[GenerateTextRequest, GenerateImageRequest, DescribeImageRequest],
    Field(discriminator="step"),
]

_request_adapter: TypeAdapter = TypeAdapter(GenerationRequest)


class TextResult(BaseModel):
    text: str


class ImageResult(BaseModel):
    base64_image: str = Field(..., alias="base64Image")


def parse_generation_request(body: Any) -> Union[GenerateTextRequest, GenerateImageRequest, DescribeImageRequest]:
    """Validate a decoded JSON body into one of the request variants."""
    if not isinstance(body, dict):
        raise InvalidPayload("request body must be a JSON object")

    step = body.get("step")
    if step not in STEPS:
        raise InvalidStep()

    try:
        return _request_adapter.validate_python(body)
    except ValidationError as exc:
        raise InvalidPayload(_describe_validation_error(exc, step)) from None


def _describe_validation_error(exc: ValidationError, step: str) -> str:
    error = exc.errors()[0]
    # The discriminated union prefixes locations with the tag value.
    location = ".".join(str(part) for part in error["loc"] if part != step)
    return f"{location}: {error['msg']}" if location else error["msg"]
