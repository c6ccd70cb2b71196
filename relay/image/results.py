"""Provider-neutral generation result contracts.

The two providers answer in different shapes: Stability AI returns inline
Base64 artifacts, DeepAI returns a hosted image URL. Both are normalized into
`GenerationResult` so the relay pipeline can branch on content rather than on
provider.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GeneratedImage:
    """One generated image, either hosted (`url`) or inline (`data`).

    Attributes:
        url: Remote image URL.
        data: Raw encoded image bytes.
        mime_type: MIME type of `data` (or the expected type behind `url`).
        seed: Generation seed when reported by the provider.
        finish_reason: Provider-reported completion status.
    """

    url: str | None = None
    data: bytes | None = None
    mime_type: str = "image/png"
    seed: int | None = None
    finish_reason: str | None = None

    def __post_init__(self) -> None:
        if (self.url is None) == (self.data is None):
            raise ValueError("GeneratedImage needs exactly one of url or data")


@dataclass(frozen=True)
class GenerationResult:
    provider: str
    images: list[GeneratedImage] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.images
