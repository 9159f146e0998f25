import html
import json
import logging
from functools import wraps
from typing import Any, Callable, List, Optional, Union

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, InlineKeyboardButton, Message
from aiogram.utils.keyboard import InlineKeyboardBuilder

from cekspek import catalog
from cekspek.compare import format_price
from cekspek.config import ADMIN_IDS
from cekspek.database import AsyncSessionLocal
from cekspek.errors import CatalogError, ParseError
from cekspek.importer import SAMPLE_ROW, ImportResult, import_phones, parse_batch
from cekspek.ratings import STARS, summarize
from cekspek.schemas import BrandInput, validate

router = Router()
logger = logging.getLogger(__name__)

PAGINATION_BRANDS_PER_PAGE = 10
PAGINATION_PHONES_PER_PAGE = 15
PAGINATION_REVIEWS_PER_PAGE = 8


class AddStates(StatesGroup):
    brand_name = State()


class DeleteStates(StatesGroup):
    brand_name = State()
    phone_name = State()
    review_id = State()
    confirm_delete = State()


class ImportStates(StatesGroup):
    waiting_json = State()


async def is_admin(user_id: int) -> bool:
    return user_id in ADMIN_IDS


def admin_required(func):
    @wraps(func)
    async def wrapper(*args, **kwargs):
        update = None
        for arg in args:
            if isinstance(arg, (Message, CallbackQuery)):
                update = arg
                break

        if not update:
            logger.error("Could not find the update object")
            return

        if not await is_admin(update.from_user.id):
            logger.warning(f"Unauthorized admin access attempt: {update.from_user.id}")
            if isinstance(update, CallbackQuery):
                await update.answer("🚫 Akses ditolak", show_alert=True)
            else:
                await update.answer("🚫 Akses ditolak")
            return

        try:
            return await func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Handler error: {e}", exc_info=True)
            if isinstance(update, CallbackQuery):
                await update.answer("❌ Terjadi kesalahan", show_alert=True)
            else:
                await update.answer("❌ Terjadi kesalahan")

    return wrapper


def page_from(callback: CallbackQuery) -> int:
    """Page number from ``page:<context>:<n>`` callback data, 0 otherwise."""
    parts = (callback.data or "").split(":")
    if len(parts) == 3 and parts[0] == "page" and parts[2].isdigit():
        return int(parts[2])
    return 0


async def send_paginated_message(
        callback: CallbackQuery,
        items: List[Any],
        title: str,
        item_format: Callable[[Any, int], str],
        context: str,
        items_per_page: int = 5,
        current_page: int = 0,
        menu_callback: str = "admin_back",
        parse_mode: str = "HTML"
):
    total_items = len(items)
    if total_items == 0:
        await callback.message.answer(f"{title}\n\nDaftar kosong", parse_mode=parse_mode)
        return

    total_pages = (total_items + items_per_page - 1) // items_per_page
    current_page = min(current_page, total_pages - 1)
    start_idx = current_page * items_per_page
    end_idx = min(start_idx + items_per_page, total_items)

    message_text = f"{title}\n\n"
    for i, item in enumerate(items[start_idx:end_idx], start_idx + 1):
        message_text += f"{item_format(item, i)}\n"

    message_text += f"\nHalaman {current_page + 1} dari {total_pages}"

    builder = InlineKeyboardBuilder()
    if current_page > 0:
        builder.button(text="⬅️ Sebelumnya", callback_data=f"page:{context}:{current_page - 1}")
    if current_page < total_pages - 1:
        builder.button(text="Berikutnya ➡️", callback_data=f"page:{context}:{current_page + 1}")
    builder.button(text="🔙 Menu", callback_data=menu_callback)
    builder.adjust(2)

    try:
        await callback.message.edit_text(
            text=message_text,
            reply_markup=builder.as_markup(),
            parse_mode=parse_mode
        )
    except Exception as e:
        logger.error(f"Could not edit message: {e}")
        await callback.message.answer(
            text=message_text,
            reply_markup=builder.as_markup(),
            parse_mode=parse_mode
        )


def format_import_result(result: ImportResult) -> str:
    title = "✅ Import berhasil!" if result.failed == 0 else "⚠️ Import selesai dengan catatan"
    lines = [title, f"Berhasil: {result.success}", f"Gagal: {result.failed}"]
    if result.errors:
        lines.append("")
        lines.append("Errors:")
        lines.extend(f"• {err}" for err in result.errors)
    return "\n".join(lines)


def format_rating_stats(reviews) -> str:
    stats = summarize(reviews)
    lines = [f"Total: {stats.total}", f"Rata-rata: ⭐ {stats.average:.1f}"]
    for star in reversed(STARS):
        lines.append(f"{star}⭐: {stats.distribution[star]}")
    return "\n".join(lines)


async def admin_panel(update: Union[Message, CallbackQuery]):
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="📱 Smartphone", callback_data="phones_menu"),
        InlineKeyboardButton(text="🏷️ Brand", callback_data="brands_menu"),
        InlineKeyboardButton(text="⭐ Review", callback_data="reviews_menu")
    )
    builder.row(
        InlineKeyboardButton(text="📥 Import JSON", callback_data="import_start"),
        InlineKeyboardButton(text="📊 Statistik", callback_data="stats")
    )

    if isinstance(update, CallbackQuery):
        await update.message.edit_text("👨‍💻 Admin panel:", reply_markup=builder.as_markup())
    else:
        await update.answer("👨‍💻 Admin panel:", reply_markup=builder.as_markup())


@router.message(Command("admin"))
@admin_required
async def admin_command(message: Message, state: FSMContext):
    await state.clear()
    await admin_panel(message)


@router.callback_query(F.data == "admin_back")
@admin_required
async def back_to_admin(callback: CallbackQuery, state: FSMContext):
    await state.clear()
    try:
        await admin_panel(callback)
    finally:
        await callback.answer()


@router.callback_query(F.data == "stats")
@admin_required
async def show_stats(callback: CallbackQuery):
    async with AsyncSessionLocal() as session:
        counts = await catalog.dashboard_counts(session)
    await callback.message.answer(
        f"📊 <b>Statistik</b>\n"
        f"Smartphone: {counts['phones']}\n"
        f"Brand: {counts['brands']}\n"
        f"Review: {counts['reviews']}",
        parse_mode="HTML"
    )
    await callback.answer()


# ========================
# Brands
# ========================

@router.callback_query(F.data == "brands_menu")
@admin_required
async def brands_menu(callback: CallbackQuery):
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="📋 Daftar brand", callback_data="view_brands"),
        InlineKeyboardButton(text="➕ Tambah", callback_data="add_brand_start")
    )
    builder.row(
        InlineKeyboardButton(text="🗑️ Hapus", callback_data="delete_brand_select"),
        InlineKeyboardButton(text="🔙 Kembali", callback_data="admin_back")
    )
    await callback.message.edit_text(
        "🏷️ <b>Kelola brand:</b>",
        reply_markup=builder.as_markup(),
        parse_mode="HTML"
    )
    await callback.answer()


@router.callback_query(F.data == "view_brands")
@router.callback_query(F.data.startswith("page:brands:"))
@admin_required
async def view_brands(callback: CallbackQuery):
    try:
        async with AsyncSessionLocal() as session:
            brands = await catalog.list_brands(session)

        def format_brand(item, idx: int) -> str:
            brand, phone_count = item
            return f"{idx}. {html.escape(brand.name)} (ID: {brand.id}) · {phone_count} HP"

        await send_paginated_message(
            callback=callback,
            items=brands,
            title="🏷️ <b>Daftar brand:</b>",
            item_format=format_brand,
            context="brands",
            items_per_page=PAGINATION_BRANDS_PER_PAGE,
            current_page=page_from(callback),
            menu_callback="brands_menu"
        )
    except CatalogError as e:
        logger.error(f"Could not load brands: {e}")
        await callback.message.answer("❌ Gagal memuat daftar brand")
    finally:
        await callback.answer()


@router.callback_query(F.data == "add_brand_start")
@admin_required
async def add_brand_start(callback: CallbackQuery, state: FSMContext):
    await callback.message.answer("✏️ Masukkan nama brand baru:")
    await state.set_state(AddStates.brand_name)
    await callback.answer()


@router.message(AddStates.brand_name)
@admin_required
async def add_brand_finish(message: Message, state: FSMContext):
    try:
        data = validate(BrandInput, {"name": message.text or ""})
        async with AsyncSessionLocal() as session:
            brand = await catalog.create_brand(session, data)
        await message.answer(
            f"✅ Brand <b>{html.escape(brand.name)}</b> ditambahkan (slug: {brand.slug})",
            parse_mode="HTML"
        )
    except CatalogError as e:
        await message.answer(f"❌ {e.message}")
    finally:
        await state.clear()
        await admin_panel(message)


@router.callback_query(F.data == "delete_brand_select")
@admin_required
async def delete_brand_select(callback: CallbackQuery, state: FSMContext):
    await callback.message.answer("🔍 Masukkan nama brand yang akan dihapus:")
    await state.set_state(DeleteStates.brand_name)
    await callback.answer()


@router.message(DeleteStates.brand_name)
@admin_required
async def find_brand_to_delete(message: Message, state: FSMContext):
    search_text = (message.text or "").strip()
    if not search_text:
        await message.answer("❌ Masukkan nama brand:")
        return

    async with AsyncSessionLocal() as session:
        brand = await catalog.find_brand_by_name(session, search_text)
        if not brand:
            await message.answer("❌ Brand tidak ditemukan. Periksa kembali namanya.")
            return
        phone_count = await catalog.count_brand_phones(session, brand.id)

    # Checked here so the admin never reaches the confirmation step
    if phone_count > 0:
        await message.answer(
            f'❌ Tidak bisa menghapus "{brand.name}" karena masih ada {phone_count} smartphone terkait.'
        )
        await state.clear()
        return

    await state.update_data(target="brand", target_id=brand.id)
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Ya, hapus", callback_data="confirm_delete"),
        InlineKeyboardButton(text="❌ Batal", callback_data="cancel_delete")
    )
    await message.answer(
        f"Yakin hapus brand?\nNama: {brand.name}\nID: {brand.id}",
        reply_markup=builder.as_markup()
    )
    await state.set_state(DeleteStates.confirm_delete)


# ========================
# Phones
# ========================

@router.callback_query(F.data == "phones_menu")
@admin_required
async def phones_menu(callback: CallbackQuery):
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="📋 Daftar smartphone", callback_data="view_phones"),
        InlineKeyboardButton(text="🗑️ Hapus", callback_data="delete_phone_select")
    )
    builder.row(InlineKeyboardButton(text="🔙 Kembali", callback_data="admin_back"))
    await callback.message.edit_text("📱 Kelola smartphone:", reply_markup=builder.as_markup())
    await callback.answer()


@router.callback_query(F.data == "view_phones")
@router.callback_query(F.data.startswith("page:phones:"))
@admin_required
async def view_phones(callback: CallbackQuery):
    try:
        async with AsyncSessionLocal() as session:
            phones = await catalog.list_phones(session, order="name")

        # Group by brand, flattened with header rows for pagination
        grouped = {}
        for phone in phones:
            grouped.setdefault(phone.brand.name, []).append(phone)
        flat_list = []
        for brand_name in sorted(grouped):
            flat_list.append(("header", brand_name))
            flat_list.extend(("phone", phone) for phone in grouped[brand_name])

        def format_item(item, idx: int) -> str:
            if item[0] == "header":
                return f"\n<b>{html.escape(item[1])}</b>"
            phone = item[1]
            return (
                f"├ {html.escape(phone.name)}\n"
                f"├─ Harga: {format_price(phone.price_min)}\n"
                f"├─ Chipset: {html.escape(phone.chipset or '-')}\n"
                f"└─ ID: {phone.id}"
            )

        await send_paginated_message(
            callback=callback,
            items=flat_list,
            title="📱 <b>Daftar smartphone:</b>",
            item_format=format_item,
            context="phones",
            items_per_page=PAGINATION_PHONES_PER_PAGE,
            current_page=page_from(callback),
            menu_callback="phones_menu"
        )
    except CatalogError as e:
        logger.error(f"Could not load phones: {e}", exc_info=True)
        await callback.message.answer("❌ Gagal memuat daftar smartphone")
    finally:
        await callback.answer()


@router.callback_query(F.data == "delete_phone_select")
@admin_required
async def delete_phone_select(callback: CallbackQuery, state: FSMContext):
    await callback.message.answer("🔍 Masukkan nama smartphone yang akan dihapus:")
    await state.set_state(DeleteStates.phone_name)
    await callback.answer()


@router.message(DeleteStates.phone_name)
@admin_required
async def find_phone_to_delete(message: Message, state: FSMContext):
    phone_name = (message.text or "").strip()

    async with AsyncSessionLocal() as session:
        phone = await catalog.find_phone_by_name(session, phone_name)
        if not phone:
            await message.answer(f"❌ Smartphone '{phone_name}' tidak ditemukan")
            await state.clear()
            return
        review_count = await catalog.count_phone_reviews(session, phone.id)

    await state.update_data(target="phone", target_id=phone.id)
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Ya, hapus", callback_data="confirm_delete"),
        InlineKeyboardButton(text="❌ Batal", callback_data="cancel_delete")
    )
    warning = f"\n\n⚠️ {review_count} review ikut terhapus!" if review_count else ""
    await message.answer(
        f"Yakin hapus smartphone?\n"
        f"Brand: {phone.brand.name}\n"
        f"Nama: {phone.name}\n"
        f"Harga: {format_price(phone.price_min)}\n"
        f"ID: {phone.id}{warning}",
        reply_markup=builder.as_markup()
    )
    await state.set_state(DeleteStates.confirm_delete)


# ========================
# Reviews
# ========================

@router.callback_query(F.data == "reviews_menu")
@admin_required
async def reviews_menu(callback: CallbackQuery):
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="📋 Daftar review", callback_data="view_reviews"),
        InlineKeyboardButton(text="🗑️ Hapus", callback_data="delete_review_select")
    )
    builder.row(InlineKeyboardButton(text="🔙 Kembali", callback_data="admin_back"))
    await callback.message.edit_text("⭐ Kelola review:", reply_markup=builder.as_markup())
    await callback.answer()


@router.callback_query(F.data == "view_reviews")
@router.callback_query(F.data.startswith("page:reviews:"))
@admin_required
async def view_reviews(callback: CallbackQuery):
    try:
        async with AsyncSessionLocal() as session:
            reviews = await catalog.list_reviews(session)

        def format_review(review, idx: int) -> str:
            return (
                f"{idx}. {'⭐' * review.rating} {html.escape(review.phone.name)}\n"
                f"├─ {html.escape(review.reviewer_name)}: {html.escape(review.comment[:80])}\n"
                f"└─ ID: {review.id}"
            )

        await send_paginated_message(
            callback=callback,
            items=reviews,
            title=f"⭐ <b>Review</b>\n{format_rating_stats(reviews)}",
            item_format=format_review,
            context="reviews",
            items_per_page=PAGINATION_REVIEWS_PER_PAGE,
            current_page=page_from(callback),
            menu_callback="reviews_menu"
        )
    except CatalogError as e:
        logger.error(f"Could not load reviews: {e}", exc_info=True)
        await callback.message.answer("❌ Gagal memuat review")
    finally:
        await callback.answer()


@router.callback_query(F.data == "delete_review_select")
@admin_required
async def delete_review_select(callback: CallbackQuery, state: FSMContext):
    await callback.message.answer("🔍 Masukkan ID review yang akan dihapus:")
    await state.set_state(DeleteStates.review_id)
    await callback.answer()


@router.message(DeleteStates.review_id)
@admin_required
async def confirm_review_delete(message: Message, state: FSMContext):
    text = (message.text or "").strip()
    if not text.isdigit():
        await message.answer("❌ ID harus berupa angka:")
        return

    await state.update_data(target="review", target_id=int(text))
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Ya, hapus", callback_data="confirm_delete"),
        InlineKeyboardButton(text="❌ Batal", callback_data="cancel_delete")
    )
    await message.answer(f"Yakin hapus review ID {text}?", reply_markup=builder.as_markup())
    await state.set_state(DeleteStates.confirm_delete)


# ========================
# Delete confirmation (brand / phone / review)
# ========================

DELETE_ACTIONS = {
    "brand": catalog.delete_brand,
    "phone": catalog.delete_phone,
    "review": catalog.delete_review,
}


@router.callback_query(DeleteStates.confirm_delete, F.data == "confirm_delete")
@admin_required
async def execute_delete(callback: CallbackQuery, state: FSMContext):
    data = await state.get_data()
    target = data.get("target")
    target_id = data.get("target_id")

    try:
        if target not in DELETE_ACTIONS or target_id is None:
            await callback.message.answer("❌ Tidak ada yang dipilih")
            return
        async with AsyncSessionLocal() as session:
            await DELETE_ACTIONS[target](session, target_id)
        await callback.message.answer(f"✅ Berhasil dihapus (ID: {target_id})")
    except CatalogError as e:
        await callback.message.answer(f"❌ Gagal menghapus: {e.message}")
    finally:
        await state.clear()
        await callback.answer()
        await admin_panel(callback.message)


@router.callback_query(DeleteStates.confirm_delete, F.data == "cancel_delete")
@admin_required
async def cancel_delete(callback: CallbackQuery, state: FSMContext):
    await state.clear()
    await callback.message.answer("❌ Penghapusan dibatalkan")
    await callback.answer()
    await admin_panel(callback.message)


# ========================
# Import
# ========================

@router.callback_query(F.data == "import_start")
@admin_required
async def import_start(callback: CallbackQuery, state: FSMContext):
    sample = json.dumps([SAMPLE_ROW], ensure_ascii=False, indent=2)
    await callback.message.answer(
        "📥 Kirim JSON array smartphone (teks atau file .json).\n"
        "Nama brand tidak peka huruf besar/kecil.\n\n"
        f"<pre>{html.escape(sample)}</pre>",
        parse_mode="HTML"
    )
    await state.set_state(ImportStates.waiting_json)
    await callback.answer()


async def _read_payload(message: Message) -> Optional[str]:
    if message.document:
        buffer = await message.bot.download(message.document)
        return buffer.read().decode("utf-8")
    return message.text


@router.message(ImportStates.waiting_json)
@admin_required
async def import_finish(message: Message, state: FSMContext):
    try:
        raw = await _read_payload(message)
        items = parse_batch(raw or "")
    except ParseError as e:
        # Stay in the import state so the admin can resend
        await message.answer(f"❌ {e.message}")
        return
    except UnicodeDecodeError:
        await message.answer("❌ File harus berupa teks UTF-8")
        return

    await message.answer(f"⏳ Mengimport {len(items)} smartphone...")
    async with AsyncSessionLocal() as session:
        brands = [brand for brand, _ in await catalog.list_brands(session)]
        result = await import_phones(session, items, brands)

    await message.answer(format_import_result(result))
    await state.clear()
    await admin_panel(message)
