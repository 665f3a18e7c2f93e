"""
Persian Pattern Definitions for the Legal Advisor

All regex patterns, prompt templates, log messages and UI labels live here.
Modules import from here instead of defining patterns inline.
"""

import re

# =============================================================================
# Digits
# =============================================================================

# Persian (U+06F0-U+06F9) and Arabic-Indic (U+0660-U+0669) digits, plus ASCII
DIGIT_CLASS = "[۰-۹٠-٩0-9]"


# =============================================================================
# Article Markers (for chunking)
# =============================================================================

# "ماده" (Article) followed by its number
ARTICLE_MARKER = re.compile(rf"ماده\s*({DIGIT_CLASS}+)")

# Paragraph boundary used by the fallback chunker
PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

LABELS = {
    "article": "ماده",
    "preamble": "مقدمه",
    "section": "بخش",
}

# =============================================================================
# Categories
# =============================================================================

CATEGORY_LABELS = {
    "labor_law": "قانون کار",
    "social_security": "تامین اجتماعی",
    "court_rulings": "آرای دیوان",
}

# =============================================================================
# LLM Prompts
# =============================================================================

LLM_PROMPTS = {
    "advisor_system": """شما یک مشاور حقوقی متخصص در قوانین کار ایران هستید. بر اساس متون قانونی ارائه شده، به سوالات کاربران پاسخ دهید.

قوانین پاسخگویی:
1. فقط بر اساس متون قانونی ارائه شده پاسخ دهید
2. اگر اطلاعات کافی در متون نیست، صادقانه بگویید
3. شماره ماده قانونی را ذکر کنید
4. پاسخ را ساده و قابل فهم بنویسید
5. اگر موضوع پیچیده است، توصیه به مشاوره با وکیل کنید""",

    "advisor_user_with_context": "متون قانونی مرتبط:\n\n{context}\n\n---\n\nسوال کاربر: {query}",

    "advisor_user_general_knowledge": (
        "سوال کاربر: {query}\n\n"
        "توجه: متن قانونی مرتبطی یافت نشد. لطفاً بر اساس دانش عمومی حقوقی پاسخ دهید، "
        "شماره ماده‌ای را ذکر نکنید و تأکید کنید که برای پاسخ دقیق‌تر نیاز به بررسی متون قانونی است."
    ),

    "extraction_system": """شما یک سیستم استخراج متن از اسناد حقوقی هستید. متن را به صورت کامل و دقیق استخراج کنید.
هر ماده قانونی را با عبارت "ماده X:" شروع کنید.
تبصره‌ها را با "تبصره:" یا "تبصره X:" مشخص کنید.
فقط متن اصلی سند را برگردانید، بدون توضیحات اضافی.""",

    "extraction_user": "لطفاً متن کامل این سند حقوقی را استخراج کنید. تمام مواد و تبصره‌ها را به ترتیب بنویسید:",
}

# =============================================================================
# User-facing messages
# =============================================================================

ERROR_MESSAGES = {
    "unknown": "خطای ناشناخته",
    "query_required": "متن سوال الزامی است",
    "scrape_fields_required": "آدرس منبع و دسته‌بندی الزامی است",
    "html_fields_required": "محتوای HTML، URL و دسته‌بندی الزامی است",
    "upload_fields_required": "فایل و دسته‌بندی الزامی است",
    "invalid_url": "آدرس منبع معتبر نیست",
    "insufficient_content": "محتوای متنی کافی یافت نشد",
    "rate_limited": "سرویس شلوغ است، لطفاً کمی صبر کنید",
    "credits_exhausted": "اعتبار سرویس هوش مصنوعی به پایان رسیده است",
    "no_answer": "پاسخی دریافت نشد",
    "extraction_empty": "متنی از سند استخراج نشد",
    "fetch_failed": "خطا در دریافت صفحه: {status}",
    "embedding_failed": "تولید بردار معنایی برای سوال ناموفق بود",
    "too_many_requests": "تعداد درخواست‌ها بیش از حد مجاز است. لطفاً بعداً تلاش کنید",
}

INGESTION_LOGS = {
    "fetching_url": "در حال دریافت URL: {url}",
    "page_fetched": "صفحه با موفقیت دریافت شد",
    "html_received": "دریافت HTML با طول {length} کاراکتر",
    "source_url": "URL منبع: {url}",
    "category": "دسته‌بندی: {category}",
    "extracting_text": "در حال استخراج متن از HTML...",
    "text_extracted": "متن استخراج شده: {length} کاراکتر",
    "file_received": "فایل دریافت شد: {name} ({size_kb:.1f} KB)",
    "sending_to_extractor": "ارسال به هوش مصنوعی برای استخراج متن...",
    "chunking": "در حال تقسیم محتوا به مواد...",
    "chunks_found": "تعداد {count} بخش/ماده یافت شد",
    "processing_chunk": "پردازش {label}...",
    "embedding_created": "Embedding تولید شد برای {label}",
    "embedding_missing": "Embedding برای {label} تولید نشد",
    "chunk_saved": "{label} ذخیره شد ✓",
    "chunk_failed": "خطا در ذخیره {label}: {error}",
    "completed": "پردازش کامل شد: {saved} از {total} بخش ذخیره شد",
    "error": "خطا: {error}",
}
