"""Data models for the Codex bridge."""

from .auth import ApiAuth, Auth, OAuthAuth
from .model import ModelFamily, NormalizedModel
from .transform import PassThrough, Transformed, TransformResult


__all__ = [
    "ApiAuth",
    "Auth",
    "ModelFamily",
    "NormalizedModel",
    "OAuthAuth",
    "PassThrough",
    "TransformResult",
    "Transformed",
]
