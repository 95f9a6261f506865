from __future__ import annotations

from typing import Dict, Optional, Set

# ============ CONFIGURATION ============

SUPPORTED: Set[str] = {"id", "en"}
FALLBACK = "id"

ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "id": {
        "CUSTOMER_NOT_FOUND": "Pelanggan tidak ditemukan",
        "COMPANY_NOT_FOUND": "Perusahaan tidak ditemukan",
        "PRODUCT_NOT_FOUND": "Produk dengan ID {product_id} tidak ditemukan",
        "QUOTATION_NOT_FOUND": "Penawaran tidak ditemukan",
        "ORDER_NOT_FOUND": "Pesanan tidak ditemukan",
        "INVOICE_NOT_FOUND": "Faktur tidak ditemukan",
        "TAX_INVOICE_NOT_FOUND": "Faktur pajak tidak ditemukan",
        "QUOTATION_EMPTY": "Penawaran harus berisi minimal satu produk",
        "QUANTITY_INVALID": "Jumlah untuk produk {product_id} harus minimal 1",
        "QUOTATION_INVALID": "Data penawaran tidak valid",
        "QUOTATION_EXPIRED": "Penawaran telah kedaluwarsa",
        "QUOTATION_ALREADY_CONVERTED": "Penawaran sudah dikonversi menjadi pesanan",
        "QUOTATION_NOT_APPROVED": "Hanya penawaran yang disetujui yang dapat dikonversi menjadi pesanan",
        "INVALID_TRANSITION": "Perubahan status dari {from_status} ke {to_status} tidak diizinkan",
        "INVALID_STATUS": "Status penawaran tidak valid: {status}",
        "INVOICE_ALREADY_EXISTS": "Faktur sudah dibuat untuk pesanan ini",
        "INVOICE_ALREADY_PAID": "Faktur sudah dibayar",
        "INVOICE_NOT_PAYABLE": "Faktur dengan status {from_status} tidak dapat dibayar",
        "INVOICE_NOT_PAID": "Faktur pajak hanya dapat dibuat untuk faktur yang sudah dibayar",
        "TAX_INVOICE_EXISTS": "Faktur pajak sudah dibuat untuk faktur ini",
        "TAX_INVOICE_B2B_ONLY": "Faktur pajak hanya dapat dibuat untuk pelanggan B2B",
        "TAX_INFO_INVALID": "Informasi pajak tidak lengkap atau tidak valid",
        "COMPANY_REQUIRED": "Data perusahaan diperlukan untuk faktur pajak",
        "TAX_INVOICE_CUSTOMER_MISMATCH": "Pelanggan tidak sesuai dengan pelanggan pada faktur",
        "COMPANY_MISMATCH": "Perusahaan tidak sesuai dengan perusahaan pelanggan",
        "NPWP_REQUIRED": "NPWP perusahaan diperlukan untuk faktur pajak",
        "NPWP_INVALID": "Format NPWP tidak valid (contoh: 01.234.567.8-901.000)",
        "REGISTRATION_REQUIRED": "Nomor registrasi perusahaan diperlukan",
        "ADDRESS_INCOMPLETE": "Alamat lengkap perusahaan diperlukan",
        "DOCUMENT_NUMBER_CONFLICT": "Nomor dokumen sudah digunakan, silakan coba lagi",
    },
    "en": {
        "CUSTOMER_NOT_FOUND": "Customer not found",
        "COMPANY_NOT_FOUND": "Company not found",
        "PRODUCT_NOT_FOUND": "Product with ID {product_id} not found",
        "QUOTATION_NOT_FOUND": "Quotation not found",
        "ORDER_NOT_FOUND": "Order not found",
        "INVOICE_NOT_FOUND": "Invoice not found",
        "TAX_INVOICE_NOT_FOUND": "Tax invoice not found",
        "QUOTATION_EMPTY": "A quotation needs at least one product",
        "QUANTITY_INVALID": "Quantity for product {product_id} must be at least 1",
        "QUOTATION_INVALID": "Invalid quotation data",
        "QUOTATION_EXPIRED": "Quotation has expired",
        "QUOTATION_ALREADY_CONVERTED": "Quotation has already been converted to an order",
        "QUOTATION_NOT_APPROVED": "Only approved quotations can be converted to orders",
        "INVALID_TRANSITION": "Invalid status transition from {from_status} to {to_status}",
        "INVALID_STATUS": "Invalid quotation status: {status}",
        "INVOICE_ALREADY_EXISTS": "Invoice already exists for this order",
        "INVOICE_ALREADY_PAID": "Invoice is already paid",
        "INVOICE_NOT_PAYABLE": "Invoice with status {from_status} cannot be paid",
        "INVOICE_NOT_PAID": "Tax invoice can only be issued for paid invoices",
        "TAX_INVOICE_EXISTS": "Tax invoice already exists for this invoice",
        "TAX_INVOICE_B2B_ONLY": "Tax invoices can only be issued for B2B customers",
        "TAX_INFO_INVALID": "Tax information is incomplete or invalid",
        "COMPANY_REQUIRED": "Company information is required for a tax invoice",
        "TAX_INVOICE_CUSTOMER_MISMATCH": "Customer does not match the invoice customer",
        "COMPANY_MISMATCH": "Company does not match the customer company",
        "NPWP_REQUIRED": "Company NPWP is required for a tax invoice",
        "NPWP_INVALID": "Invalid NPWP format (example: 01.234.567.8-901.000)",
        "REGISTRATION_REQUIRED": "Company registration number is required",
        "ADDRESS_INCOMPLETE": "Complete company address is required",
        "DOCUMENT_NUMBER_CONFLICT": "Document number already in use, please retry",
    },
}

STATUS_LABELS: Dict[str, str] = {
    "QUOTATION_PENDING": "Menunggu",
    "QUOTATION_APPROVED": "Disetujui",
    "QUOTATION_REJECTED": "Ditolak",
    "QUOTATION_CONVERTED": "Dikonversi",
    "QUOTATION_EXPIRED": "Kedaluwarsa",
    "ORDER_NEW": "Baru",
    "ORDER_PROCESSING": "Diproses",
    "ORDER_SHIPPED": "Dikirim",
    "ORDER_DELIVERED": "Diterima",
    "ORDER_CANCELLED": "Dibatalkan",
    "INVOICE_PENDING": "Belum Dibayar",
    "INVOICE_PAID": "Sudah Dibayar",
    "INVOICE_OVERDUE": "Jatuh Tempo",
    "INVOICE_CANCELLED": "Dibatalkan",
}


# ============ CORE ============


def _normalize_lang(code: Optional[str]) -> Optional[str]:
    """Normalize a language code to its base (id-ID -> id)."""
    if not code:
        return None
    return code.lower().split("-")[0].split("_")[0]


def translate(code: str, lang: Optional[str] = None, **params) -> str:
    """
    Localized text for an error code.
    Unknown languages fall back to Indonesian, unknown codes to the code itself.
    """
    base = _normalize_lang(lang)
    if base not in SUPPORTED:
        base = FALLBACK

    template = ERROR_MESSAGES[base].get(code) or ERROR_MESSAGES[FALLBACK].get(code)
    if template is None:
        return code

    try:
        return template.format(**params)
    except KeyError:
        return template


def status_label(kind: str, status: str) -> str:
    key = f"{kind.upper()}_{str(status).upper()}"
    return STATUS_LABELS.get(key, str(status))
