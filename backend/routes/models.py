"""Pydantic request/response models for API endpoints."""

from typing import Any

from pydantic import BaseModel


class UploadStory(BaseModel):
    story: dict[str, Any]


class NameBody(BaseModel):
    name: str


class ChoiceBody(BaseModel):
    choice_id: str


class TextBody(BaseModel):
    value: str


class FeedbackScreenBody(BaseModel):
    visible: bool = True


class CheckConnectionBody(BaseModel):
    provider_url: str
    provider_format: str = "gemini"
    api_key: str = ""
