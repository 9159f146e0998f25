"""
Side-by-side comparison table.

Section and row order below is the display contract of the compare page:
renderers iterate the result as-is.
"""
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence

from cekspek.errors import ValidationError

MIN_PHONES = 2
MAX_PHONES = 3
EMPTY = "-"


def _plain(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _grouped(number: int) -> str:
    # id-ID groups thousands with dots
    return f"{int(number):,}".replace(",", ".")


def format_price(value: Optional[int]) -> str:
    if not value:
        return EMPTY
    return f"Rp {_grouped(value)}"


def format_number(value: Optional[int]) -> str:
    if not value:
        return EMPTY
    return _grouped(value)


def format_text(value: Any) -> str:
    if value is None or value == "":
        return EMPTY
    if isinstance(value, bool):
        return format_flag(value)
    return _plain(value)


def format_flag(value: Optional[bool]) -> str:
    if value is None:
        return EMPTY
    return "Ya" if value else "Tidak"


def with_unit(unit: str) -> Callable[[Any], str]:
    def formatter(value: Any) -> str:
        if value is None or value == "":
            return EMPTY
        return f"{_plain(value)} {unit}"
    return formatter


def format_rating(value: Optional[float]) -> str:
    if value is None:
        return EMPTY
    return f"⭐ {value:.1f}"


@dataclass(frozen=True)
class RowSpec:
    label: str
    field: Optional[str]
    formatter: Callable[[Any], str] = format_text


@dataclass
class Row:
    label: str
    values: List[str]


@dataclass
class Section:
    label: str
    rows: List[Row]


# field=None marks the derived rating row
SECTIONS = (
    ("Harga & Rating", (
        RowSpec("Harga", "price_min", format_price),
        RowSpec("Rating", None, format_rating),
    )),
    ("Performa & Benchmark", (
        RowSpec("Chipset", "chipset"),
        RowSpec("CPU", "cpu"),
        RowSpec("GPU", "gpu"),
        RowSpec("RAM", "ram"),
        RowSpec("Storage", "storage"),
        RowSpec("Antutu Benchmark", "antutu_score", format_number),
    )),
    ("Layar", (
        RowSpec("Ukuran", "display_size", with_unit("inch")),
        RowSpec("Tipe Panel", "display_type"),
        RowSpec("Resolusi", "display_resolution"),
        RowSpec("Refresh Rate", "display_refresh_rate", with_unit("Hz")),
        RowSpec("Proteksi", "display_protection"),
    )),
    ("Kamera Belakang", (
        RowSpec("Kamera Utama", "camera_main"),
        RowSpec("Ultrawide", "camera_ultrawide"),
        RowSpec("Telephoto", "camera_telephoto"),
        RowSpec("Video", "camera_video"),
    )),
    ("Kamera Depan", (
        RowSpec("Kamera Depan", "camera_front"),
    )),
    ("Baterai", (
        RowSpec("Kapasitas", "battery_capacity", with_unit("mAh")),
        RowSpec("Pengisian Daya", "battery_charging"),
        RowSpec("Wireless Charging", "battery_wireless"),
    )),
    ("Konektivitas", (
        RowSpec("Jaringan", "network"),
        RowSpec("SIM", "sim"),
        RowSpec("WiFi", "wifi"),
        RowSpec("Bluetooth", "bluetooth"),
        RowSpec("NFC", "nfc", format_flag),
        RowSpec("USB", "usb_type"),
        RowSpec("Audio Jack 3.5mm", "audio_jack", format_flag),
    )),
    ("Desain & Body", (
        RowSpec("Dimensi", "body_dimensions"),
        RowSpec("Berat", "body_weight", with_unit("gram")),
        RowSpec("Material", "body_material"),
        RowSpec("Ketahanan", "body_protection"),
    )),
    ("Keamanan & Software", (
        RowSpec("Fingerprint", "fingerprint"),
        RowSpec("Face Unlock", "face_unlock", format_flag),
        RowSpec("OS", "os"),
        RowSpec("UI", "ui"),
    )),
)


def _get(phone: Any, field: str) -> Any:
    if isinstance(phone, Mapping):
        return phone.get(field)
    return getattr(phone, field, None)


def compare(phones: Sequence[Any], ratings: Optional[Mapping[int, float]] = None) -> List[Section]:
    """Build the comparison table for 2-3 phones, one value per phone in input order.

    ``ratings`` maps phone id to its average rating and holds only phones
    that have reviews.
    """
    if not MIN_PHONES <= len(phones) <= MAX_PHONES:
        raise ValidationError(f"Pilih {MIN_PHONES}-{MAX_PHONES} smartphone untuk dibandingkan")
    ratings = ratings or {}

    sections = []
    for section_label, specs in SECTIONS:
        rows = []
        for spec in specs:
            if spec.field is None:
                raw = [ratings.get(_get(phone, "id")) for phone in phones]
            else:
                raw = [_get(phone, spec.field) for phone in phones]
            rows.append(Row(spec.label, [spec.formatter(value) for value in raw]))
        sections.append(Section(section_label, rows))
    return sections
