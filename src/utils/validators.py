"""Pipeline/layer schema validation and config loading.

Provides centralized validation for texture pipeline configs using pydantic:
    - Layer schemas (tagged by `kind`): gradient, perlin, grain, blur, texture_sample
    - Curve schemas: gradient stops (position → color), gamma keys (time → value)
    - Pipeline schema (texture.v1): resolution, background, seed, workers, layers

All loaders fail fast with actionable messages (offending keys, expected
ranges) and raise ConfigurationError so a render either fully succeeds or
fails before any pixel is touched.

Conventions:
    - Colors: RGBA floats; YAML may use "#RRGGBB[AA]", "clear"/"black"/"white",
      or [r, g, b(, a)] lists
    - Enum values are lower-case strings ("set", "horizontal", "r", ...)
    - Layer models are frozen; the engine never mutates them

Usage:
    from src.utils import validators

    config = validators.load_pipeline_config("configs/textures/example_stack.yaml")
    config = validators.parse_pipeline_config({"width": 64, "layers": [...]})
"""

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

import numpy as np
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .color import BLACK, CLEAR, WHITE, Channel, parse_color


SCHEMA_VERSION = "texture.v1"

# Valid resolutions: powers of two 1..1024
RESOLUTIONS: Tuple[int, ...] = tuple(2 ** i for i in range(11))


# ============================================================================
# ERRORS
# ============================================================================

class ConfigurationError(ValueError):
    """Invalid pipeline or layer configuration."""


class InvalidDimension(ConfigurationError):
    """Canvas width/height is not a valid positive resolution."""


def validate_dimension(
    value: Any,
    name: str = "width",
    valid: Optional[Tuple[int, ...]] = None
) -> int:
    """Validate a canvas dimension.

    Parameters
    ----------
    value : Any
        Candidate dimension
    name : str
        Field name for error messages
    valid : tuple of int, optional
        Allowed values; None accepts any positive integer

    Returns
    -------
    int
        The validated dimension

    Raises
    ------
    InvalidDimension
        If value is not an integer, is ≤ 0, or is outside `valid`
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidDimension(f"{name} must be an integer, got {value!r}")
    value = int(value)
    if value <= 0:
        raise InvalidDimension(f"{name} must be > 0, got {value}")
    if valid is not None and value not in valid:
        raise InvalidDimension(f"{name}={value} not in valid resolutions {valid}")
    return value


# ============================================================================
# ENUMS
# ============================================================================

class BlendMode(str, Enum):
    """How a layer result combines with the existing pixel."""
    SET = "set"
    ALPHA = "alpha"
    ADDITIVE = "additive"
    MULTIPLY = "multiply"


class GradientAxis(str, Enum):
    """Source of the gradient parameter t."""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    CIRCULAR = "circular"
    GRADIENT_MAP = "gradient_map"


class GradientMapSource(str, Enum):
    """Which value of the current pixel drives a gradient map."""
    GRAYSCALE = "grayscale"
    CHANNEL = "channel"


class GradientMode(str, Enum):
    """Stop interpolation: linear blend, or step to the next stop."""
    BLEND = "blend"
    FIXED = "fixed"


class CurveInterpolation(str, Enum):
    """Gamma curve interpolation between keys."""
    LINEAR = "linear"
    SMOOTH = "smooth"


class WrapMode(str, Enum):
    """Edge handling when sampling a source image."""
    CLAMP = "clamp"
    REPEAT = "repeat"


def _lower(v: Any) -> Any:
    """Normalize enum strings from YAML ("Set", " ALPHA ") to lower case."""
    if isinstance(v, str) and not isinstance(v, Enum):
        return v.strip().lower()
    return v


Color4 = Annotated[Tuple[float, float, float, float], BeforeValidator(parse_color)]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid', populate_by_name=True)


# ============================================================================
# CURVES
# ============================================================================

class GradientStop(_Frozen):
    """One (position, color) stop of a gradient."""
    position: float = Field(..., ge=0.0, le=1.0, description="Stop position in [0, 1]")
    color: Color4


class GradientCurve(_Frozen):
    """Ordered color stops, linearly interpolated over t ∈ [0, 1]."""
    stops: List[GradientStop] = Field(..., min_length=1)
    mode: GradientMode = GradientMode.BLEND

    @field_validator('stops', mode='before')
    @classmethod
    def expand_pairs(cls, v: Any) -> Any:
        """Accept [[position, color], ...] shorthand."""
        if isinstance(v, (list, tuple)):
            return [
                {'position': item[0], 'color': item[1]}
                if isinstance(item, (list, tuple)) and len(item) == 2 else item
                for item in v
            ]
        return v

    @field_validator('stops')
    @classmethod
    def sort_stops(cls, v: List[GradientStop]) -> List[GradientStop]:
        return sorted(v, key=lambda s: s.position)

    @field_validator('mode', mode='before')
    @classmethod
    def normalize_mode(cls, v: Any) -> Any:
        return _lower(v)

    @classmethod
    def two_stop(cls, start=BLACK, end=WHITE) -> 'GradientCurve':
        """Gradient from `start` at t=0 to `end` at t=1."""
        return cls(stops=[
            GradientStop(position=0.0, color=start),
            GradientStop(position=1.0, color=end),
        ])


class CurveKey(_Frozen):
    """One (time, value) control point of a gamma curve."""
    time: float
    value: float


class GammaCurve(_Frozen):
    """Monotonic control-point curve remapping a scalar.

    Outside the key range the curve holds its end values.
    """
    keys: List[CurveKey] = Field(..., min_length=1)
    interpolation: CurveInterpolation = CurveInterpolation.LINEAR

    @field_validator('keys', mode='before')
    @classmethod
    def expand_pairs(cls, v: Any) -> Any:
        """Accept [[time, value], ...] shorthand."""
        if isinstance(v, (list, tuple)):
            return [
                {'time': item[0], 'value': item[1]}
                if isinstance(item, (list, tuple)) and len(item) == 2 else item
                for item in v
            ]
        return v

    @field_validator('keys')
    @classmethod
    def sort_keys(cls, v: List[CurveKey]) -> List[CurveKey]:
        keys = sorted(v, key=lambda k: k.time)
        times = [k.time for k in keys]
        if len(set(times)) != len(times):
            raise ValueError(f"Gamma curve key times must be unique, got {times}")
        return keys

    @field_validator('interpolation', mode='before')
    @classmethod
    def normalize_interpolation(cls, v: Any) -> Any:
        return _lower(v)

    @classmethod
    def linear(cls, t0: float = 0.0, v0: float = 0.0, t1: float = 1.0, v1: float = 1.0) -> 'GammaCurve':
        """Straight line through (t0, v0) and (t1, v1)."""
        return cls(keys=[CurveKey(time=t0, value=v0), CurveKey(time=t1, value=v1)])


# ============================================================================
# LAYER SCHEMAS
# ============================================================================

class LayerBase(_Frozen):
    """Fields shared by every layer kind."""
    skip: bool = Field(False, description="Leave the canvas untouched")
    alpha: float = Field(1.0, ge=0.0, le=1.0, description="Layer opacity")
    blend_mode: BlendMode = BlendMode.SET
    offset: Tuple[float, float] = Field(
        (0.0, 0.0), description="Sampling shift as a fraction of canvas size"
    )

    @field_validator('blend_mode', mode='before')
    @classmethod
    def normalize_blend_mode(cls, v: Any) -> Any:
        return _lower(v)


class GradientLayer(LayerBase):
    """Gradient evaluated along an axis, a circle, or from the current pixel."""
    kind: Literal['gradient'] = 'gradient'
    axis: GradientAxis = GradientAxis.HORIZONTAL
    source: GradientMapSource = GradientMapSource.GRAYSCALE
    channel: Channel = Channel.R
    gradient: GradientCurve = Field(default_factory=GradientCurve.two_stop)
    gamma: Optional[GammaCurve] = None

    @field_validator('axis', 'source', 'channel', mode='before')
    @classmethod
    def normalize_enums(cls, v: Any) -> Any:
        return _lower(v)


class PerlinLayer(LayerBase):
    """Perlin noise remapped through a gamma curve into a color range."""
    kind: Literal['perlin'] = 'perlin'
    min_color: Color4 = Field(CLEAR, alias='min')
    max_color: Color4 = Field(WHITE, alias='max')
    uv: Tuple[float, float] = Field((1.0, 1.0), description="Noise frequency per canvas")
    gamma: GammaCurve = Field(default_factory=GammaCurve.linear)
    remap: Tuple[float, float] = (0.0, 1.0)


class GrainLayer(LayerBase):
    """Index-dependent random grain choosing between two colors."""
    kind: Literal['grain'] = 'grain'
    min_color: Color4 = Field(CLEAR, alias='min')
    max_color: Color4 = Field(WHITE, alias='max')
    amount: float = Field(0.5, ge=0.0, le=1.0)
    reseed: bool = Field(True, description="Fresh draw per pixel from the layer generator")
    seed: int = Field(0, description="Fixed seed used when reseed is False")


class BlurLayer(LayerBase):
    """Box blur over the pre-pass buffer with clamped edges."""
    kind: Literal['blur'] = 'blur'
    radius: int = Field(4, ge=0)


class TextureSampleLayer(LayerBase):
    """Bilinear sampling of a host-supplied source image.

    `source` is bound by the host at runtime (e.g. an ArrayImage) and is never
    serialized. Without a source the layer passes pixels through.
    """
    kind: Literal['texture_sample'] = 'texture_sample'
    source: Optional[Any] = Field(None, exclude=True)
    tile_and_offset: Tuple[float, float, float, float] = (1.0, 1.0, 0.0, 0.0)
    wrap_mode: WrapMode = WrapMode.CLAMP

    @field_validator('wrap_mode', mode='before')
    @classmethod
    def normalize_wrap_mode(cls, v: Any) -> Any:
        return _lower(v)

    @field_validator('source')
    @classmethod
    def validate_source(cls, v: Any) -> Any:
        if v is None:
            return v
        for attr in ('width', 'height', 'sample'):
            if not hasattr(v, attr):
                raise ValueError(f"source must provide width, height and sample(u, v); missing {attr!r}")
        return v


Layer = Annotated[
    Union[GradientLayer, PerlinLayer, GrainLayer, BlurLayer, TextureSampleLayer],
    Field(discriminator='kind'),
]

LAYER_TYPES: Dict[str, type] = {
    'gradient': GradientLayer,
    'perlin': PerlinLayer,
    'grain': GrainLayer,
    'blur': BlurLayer,
    'texture_sample': TextureSampleLayer,
}


# ============================================================================
# PIPELINE SCHEMA (texture.v1)
# ============================================================================

class PipelineConfig(BaseModel):
    """Complete texture pipeline definition.

    Width/height are plain integers here; they are checked against
    RESOLUTIONS by validate_pipeline() so that render() reports
    InvalidDimension rather than a schema error.
    """
    model_config = ConfigDict(frozen=True, extra='forbid', populate_by_name=True)

    schema_version: str = Field(SCHEMA_VERSION, alias="schema")
    width: int = 128
    height: int = 128
    is_square: bool = Field(True, description="Height mirrors width")
    background: Color4 = CLEAR
    seed: Optional[int] = Field(None, description="Root seed for layer-local generators")
    workers: int = Field(1, ge=1, description="Row-range threads per layer pass")
    layers: List[Optional[Layer]] = Field(default_factory=lambda: [GradientLayer()])

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != SCHEMA_VERSION:
            raise ValueError(f"Expected schema '{SCHEMA_VERSION}', got '{v}'")
        return v

    @model_validator(mode='before')
    @classmethod
    def normalize_resolution(cls, data: Any) -> Any:
        """Accept `resolution: N` as shorthand for width (and height if square)."""
        if isinstance(data, dict) and 'resolution' in data:
            data = dict(data)
            data.setdefault('width', data.pop('resolution'))
        return data

    def resolved_size(self) -> Tuple[int, int]:
        """(width, height) after applying is_square."""
        return self.width, (self.width if self.is_square else self.height)


# ============================================================================
# SEMANTIC CHECKS (run before any pixel work)
# ============================================================================

def _check_enum(value: Any, enum_cls: type, what: str) -> None:
    try:
        enum_cls(value)
    except ValueError as e:
        allowed = [m.value for m in enum_cls]
        raise ConfigurationError(f"Unrecognized {what} {value!r}; expected one of {allowed}") from e


def validate_layer(layer: Any, position: int = 0) -> None:
    """Check one layer for problems that would surface mid-render.

    Pydantic already enforces these at construction; this re-checks layers
    built with model_construct() or mutated copies.

    Raises
    ------
    ConfigurationError
        Unknown kind, enum variant, empty curve, or negative radius
    """
    if layer is None:
        return
    kind = getattr(layer, 'kind', None)
    if kind not in LAYER_TYPES:
        raise ConfigurationError(f"Layer {position}: unknown kind {kind!r}; expected one of {sorted(LAYER_TYPES)}")
    _check_enum(layer.blend_mode, BlendMode, f"blend mode in layer {position}")

    if kind == 'gradient':
        _check_enum(layer.axis, GradientAxis, f"gradient axis in layer {position}")
        if layer.axis == GradientAxis.GRADIENT_MAP:
            _check_enum(layer.source, GradientMapSource, f"gradient map source in layer {position}")
            if layer.source == GradientMapSource.CHANNEL:
                _check_enum(layer.channel, Channel, f"channel in layer {position}")
        if not layer.gradient.stops:
            raise ConfigurationError(f"Layer {position}: gradient has no stops")
        _check_enum(layer.gradient.mode, GradientMode, f"gradient mode in layer {position}")
        if layer.gamma is not None and not layer.gamma.keys:
            raise ConfigurationError(f"Layer {position}: gamma curve has no keys")
    elif kind == 'perlin':
        if not layer.gamma.keys:
            raise ConfigurationError(f"Layer {position}: gamma curve has no keys")
    elif kind == 'blur':
        if layer.radius < 0:
            raise ConfigurationError(f"Layer {position}: blur radius must be >= 0, got {layer.radius}")
    elif kind == 'texture_sample':
        _check_enum(layer.wrap_mode, WrapMode, f"wrap mode in layer {position}")


def validate_pipeline(config: PipelineConfig) -> Tuple[int, int]:
    """Validate a pipeline config before rendering.

    Returns
    -------
    tuple of int
        Resolved (width, height)

    Raises
    ------
    InvalidDimension
        If the resolved width/height is not in RESOLUTIONS
    ConfigurationError
        If any layer is invalid
    """
    width, height = config.resolved_size()
    width = validate_dimension(width, "width", RESOLUTIONS)
    height = validate_dimension(height, "height", RESOLUTIONS)
    for i, layer in enumerate(config.layers or []):
        validate_layer(layer, i)
    return width, height


# ============================================================================
# PUBLIC API
# ============================================================================

def parse_pipeline_config(data: Optional[Dict[str, Any]]) -> PipelineConfig:
    """Validate an in-memory config dict.

    Raises
    ------
    ConfigurationError
        If validation fails (message lists offending keys)
    """
    try:
        return PipelineConfig.model_validate(data or {})
    except ValidationError as e:
        raise ConfigurationError(f"Pipeline config validation failed: {e}") from e


def load_pipeline_config(path: Union[str, Path]) -> PipelineConfig:
    """Load and validate a pipeline config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to a texture.v1 YAML file

    Returns
    -------
    PipelineConfig
        Validated configuration (texture_sample sources unbound)

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ConfigurationError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Pipeline config not found: {path}")

    data = fs.load_yaml(path)
    try:
        return PipelineConfig.model_validate(data or {})
    except ValidationError as e:
        raise ConfigurationError(f"Pipeline config validation failed at {path}: {e}") from e
