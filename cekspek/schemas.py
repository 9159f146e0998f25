"""
Input schemas for the catalog.

Raw input (admin forms, JSON import, review submissions) is validated once
here; the catalog operations only ever see fully-typed records. A phone's
specification is split into groups, each mapping to a run of flat columns on
the ``phones`` table (``DisplaySpec.size`` <-> ``display_size`` and so on).
"""
from datetime import date
from typing import Annotated, Any, ClassVar, Dict, Mapping, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from cekspek.errors import ValidationError
from cekspek.fields import flag, optional_number, optional_text, slugify

OptionalText = Annotated[Optional[str], BeforeValidator(optional_text)]
OptionalInt = Annotated[Optional[Annotated[int, Field(ge=0)]], BeforeValidator(optional_number)]
OptionalFloat = Annotated[Optional[Annotated[float, Field(gt=0)]], BeforeValidator(optional_number)]
OptionalDate = Annotated[Optional[date], BeforeValidator(optional_text)]
Flag = Annotated[bool, BeforeValidator(flag)]


class SpecGroup(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prefix: ClassVar[str] = ""

    @classmethod
    def pick_columns(cls, data: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            field: data[cls.prefix + field]
            for field in cls.model_fields
            if cls.prefix + field in data
        }

    def to_columns(self) -> Dict[str, Any]:
        return {self.prefix + field: value for field, value in self.model_dump().items()}


class DisplaySpec(SpecGroup):
    prefix: ClassVar[str] = "display_"
    size: OptionalFloat = None
    type: OptionalText = None
    resolution: OptionalText = None
    refresh_rate: OptionalInt = None
    protection: OptionalText = None


class PerformanceSpec(SpecGroup):
    chipset: OptionalText = None
    cpu: OptionalText = None
    gpu: OptionalText = None
    ram: OptionalText = None
    storage: OptionalText = None
    antutu_score: OptionalInt = None


class CameraSpec(SpecGroup):
    prefix: ClassVar[str] = "camera_"
    main: OptionalText = None
    ultrawide: OptionalText = None
    telephoto: OptionalText = None
    front: OptionalText = None
    video: OptionalText = None


class BatterySpec(SpecGroup):
    prefix: ClassVar[str] = "battery_"
    capacity: OptionalInt = None
    charging: OptionalText = None
    wireless: OptionalText = None


class ConnectivitySpec(SpecGroup):
    network: OptionalText = None
    sim: OptionalText = None
    wifi: OptionalText = None
    bluetooth: OptionalText = None
    nfc: Flag = False
    usb_type: OptionalText = None
    audio_jack: Flag = False


class BodySpec(SpecGroup):
    prefix: ClassVar[str] = "body_"
    dimensions: OptionalText = None
    weight: OptionalInt = None
    material: OptionalText = None
    protection: OptionalText = None


class SoftwareSpec(SpecGroup):
    fingerprint: OptionalText = None
    face_unlock: Flag = False
    os: OptionalText = None
    ui: OptionalText = None


class AffiliateLinks(SpecGroup):
    shopee_link: OptionalText = None
    tokopedia_link: OptionalText = None


SPEC_GROUPS: Dict[str, type] = {
    "display": DisplaySpec,
    "performance": PerformanceSpec,
    "camera": CameraSpec,
    "battery": BatterySpec,
    "connectivity": ConnectivitySpec,
    "body": BodySpec,
    "software": SoftwareSpec,
    "affiliate": AffiliateLinks,
}


def _required_name(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
    if not value:
        raise ValueError('"name" wajib diisi')
    return value


class BrandInput(BaseModel):
    name: str
    slug: OptionalText = None
    logo_url: OptionalText = None
    country: OptionalText = None

    check_name = field_validator("name", mode="before")(_required_name)

    @model_validator(mode="after")
    def derive_slug(self):
        self.slug = slugify(self.slug or self.name)
        if not self.slug:
            raise ValueError("Slug tidak valid: nama harus mengandung huruf atau angka")
        return self


class PhoneInput(BaseModel):
    """A phone record as it will be stored."""

    brand_id: int
    name: str
    slug: OptionalText = None
    image_url: OptionalText = None
    price_min: OptionalInt = None
    price_max: OptionalInt = None
    release_date: OptionalDate = None
    display: DisplaySpec = Field(default_factory=DisplaySpec)
    performance: PerformanceSpec = Field(default_factory=PerformanceSpec)
    camera: CameraSpec = Field(default_factory=CameraSpec)
    battery: BatterySpec = Field(default_factory=BatterySpec)
    connectivity: ConnectivitySpec = Field(default_factory=ConnectivitySpec)
    body: BodySpec = Field(default_factory=BodySpec)
    software: SoftwareSpec = Field(default_factory=SoftwareSpec)
    affiliate: AffiliateLinks = Field(default_factory=AffiliateLinks)
    is_featured: Flag = False

    TOP_LEVEL: ClassVar[tuple] = (
        "brand_id", "name", "slug", "image_url", "price_min", "price_max", "release_date", "is_featured",
    )

    check_name = field_validator("name", mode="before")(_required_name)

    @model_validator(mode="after")
    def check_prices_and_slug(self):
        if self.price_min is not None and self.price_max is not None and self.price_max < self.price_min:
            raise ValueError("price_max tidak boleh lebih kecil dari price_min")
        self.slug = slugify(self.slug or self.name)
        if not self.slug:
            raise ValueError("Slug tidak valid: nama harus mengandung huruf atau angka")
        return self

    @classmethod
    def from_columns(cls, data: Mapping[str, Any]) -> "PhoneInput":
        """Build from a flat mapping keyed by ``phones`` column names."""
        nested: Dict[str, Any] = {key: data[key] for key in cls.TOP_LEVEL if key in data}
        for group, model in SPEC_GROUPS.items():
            nested[group] = model.pick_columns(data)
        return cls.model_validate(nested)

    def to_columns(self) -> Dict[str, Any]:
        columns = {key: getattr(self, key) for key in self.TOP_LEVEL}
        for group in SPEC_GROUPS:
            columns.update(getattr(self, group).to_columns())
        return columns


class ReviewInput(BaseModel):
    reviewer_name: str = "Anonim"
    rating: int
    comment: str

    @field_validator("reviewer_name", mode="before")
    @classmethod
    def default_name(cls, value):
        value = optional_text(value) or "Anonim"
        if len(value) > 50:
            raise ValueError("Nama maksimal 50 karakter")
        return value

    @field_validator("rating", mode="before")
    @classmethod
    def check_rating(cls, value):
        if value in (None, "", 0):
            raise ValueError("Pilih rating terlebih dahulu")
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
            raise ValueError("Rating harus bilangan bulat 1 sampai 5")
        return value

    @field_validator("comment", mode="before")
    @classmethod
    def check_comment(cls, value):
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ValueError("Komentar harus berupa teks")
        value = value.strip()
        if len(value) < 10:
            raise ValueError("Komentar minimal 10 karakter")
        if len(value) > 500:
            raise ValueError("Komentar maksimal 500 karakter")
        return value


class PhoneSummary(BaseModel):
    """Lightweight search result."""

    id: int
    name: str
    slug: str
    image_url: Optional[str] = None
    brand_name: Optional[str] = None
    chipset: Optional[str] = None
    ram: Optional[str] = None
    battery_capacity: Optional[int] = None
    price_min: Optional[int] = None

    @classmethod
    def from_phone(cls, phone) -> "PhoneSummary":
        return cls(
            id=phone.id,
            name=phone.name,
            slug=phone.slug,
            image_url=phone.image_url,
            brand_name=phone.brand.name if phone.brand else None,
            chipset=phone.chipset,
            ram=phone.ram,
            battery_capacity=phone.battery_capacity,
            price_min=phone.price_min,
        )


def _error_message(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    reason = err.get("ctx", {}).get("error")
    message = str(reason) if reason else err["msg"]
    loc = list(err["loc"])
    if not loc or (reason and loc[-1] in ("name", "rating", "comment", "reviewer_name")):
        return message
    if len(loc) >= 2 and loc[0] in SPEC_GROUPS:
        column = SPEC_GROUPS[loc[0]].prefix + str(loc[1])
    else:
        column = str(loc[0])
    return f"{column}: {message}"


def validate(model: type, data: Any) -> Any:
    """Validate ``data`` against ``model``, raising the catalog ValidationError."""
    try:
        if model is PhoneInput and isinstance(data, Mapping):
            return PhoneInput.from_columns(data)
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_error_message(exc)) from exc
