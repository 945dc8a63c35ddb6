from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from waveraster.models import Color, RenderSpec, Samples, Seconds, TimeRange
from waveraster.output import parse_format

ColorValue = str | tuple[int, int, int] | tuple[int, int, int, int]


class PayloadBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SecondsRangePayload(PayloadBase):
    kind: Literal["seconds"]
    start: float
    end: float

    def to_time_range(self) -> TimeRange:
        return Seconds(start=self.start, end=self.end)


class SamplesRangePayload(PayloadBase):
    kind: Literal["samples"]
    start: int = Field(ge=0)
    end: int = Field(ge=0)

    def to_time_range(self) -> TimeRange:
        return Samples(start=self.start, end=self.end)


TimeRangePayload = Annotated[SecondsRangePayload | SamplesRangePayload, Field(discriminator="kind")]


class RenderSpecPayload(PayloadBase):
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    foreground: ColorValue = "#ffffffff"
    background: ColorValue = "#00000000"
    format: str = "rgba"
    amp_min: float = -1.0
    amp_max: float = 1.0

    @field_validator("foreground", "background")
    @classmethod
    def validate_color(cls, value: ColorValue) -> ColorValue:
        _to_color(value)
        return value

    @field_validator("format")
    @classmethod
    def validate_format(cls, value: str) -> str:
        return parse_format(value).value

    @model_validator(mode="after")
    def validate_amplitude_domain(self) -> RenderSpecPayload:
        if self.amp_min >= self.amp_max:
            raise ValueError("amp_min must be below amp_max.")
        return self

    def to_render_spec(self) -> RenderSpec:
        return RenderSpec(
            width=self.width,
            height=self.height,
            foreground=_to_color(self.foreground),
            background=_to_color(self.background),
            format=self.format,
            amp_min=self.amp_min,
            amp_max=self.amp_max,
        )


class RenderRequestPayload(PayloadBase):
    time_range: TimeRangePayload
    spec: RenderSpecPayload
    exact: bool = False


def _to_color(value: ColorValue) -> Color:
    if isinstance(value, str):
        return Color.from_hex(value)
    return Color(*value)


def _format_validation_error(exc: ValidationError) -> str:
    parts: list[str] = []
    for item in exc.errors():
        loc = ".".join(str(piece) for piece in item.get("loc", [])) or "payload"
        msg = item.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}")
    details = "; ".join(parts) if parts else "invalid payload"
    return f"Invalid payload: {details}"


def parse_payload(model: type[PayloadBase], payload: Any) -> tuple[PayloadBase | None, str | None]:
    if not isinstance(payload, dict):
        return None, "Invalid payload: expected object."
    try:
        return model.model_validate(payload), None
    except ValidationError as exc:
        return None, _format_validation_error(exc)
