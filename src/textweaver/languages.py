"""
Language catalog for textweaver.

Codes, English names and native names for every language a project can
target, plus the set of right-to-left scripts used by the exporters.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Language:
    """A supported language."""

    code: str
    name: str
    native_name: str


_LANGUAGE_ROWS = [
    ("en", "English", "English"),
    ("es", "Spanish", "Español"),
    ("fr", "French", "Français"),
    ("de", "German", "Deutsch"),
    ("it", "Italian", "Italiano"),
    ("pt", "Portuguese", "Português"),
    ("ru", "Russian", "Русский"),
    ("ja", "Japanese", "日本語"),
    ("ko", "Korean", "한국어"),
    ("zh", "Chinese (Simplified)", "中文(简体)"),
    ("zh-TW", "Chinese (Traditional)", "中文(繁體)"),
    ("ar", "Arabic", "العربية"),
    ("he", "Hebrew", "עברית"),
    ("hi", "Hindi", "हिन्दी"),
    ("bn", "Bengali", "বাংলা"),
    ("ur", "Urdu", "اردو"),
    ("pa", "Punjabi", "ਪੰਜਾਬੀ"),
    ("gu", "Gujarati", "ગુજરાતી"),
    ("ta", "Tamil", "தமிழ்"),
    ("te", "Telugu", "తెలుగు"),
    ("kn", "Kannada", "ಕನ್ನಡ"),
    ("ml", "Malayalam", "മലയാളം"),
    ("mr", "Marathi", "मराठी"),
    ("yo", "Yoruba", "Yorùbá"),
    ("ig", "Igbo", "Igbo"),
    ("ha", "Hausa", "Hausa"),
    ("sw", "Swahili", "Kiswahili"),
    ("am", "Amharic", "አማርኛ"),
    ("af", "Afrikaans", "Afrikaans"),
    ("zu", "Zulu", "isiZulu"),
    ("xh", "Xhosa", "isiXhosa"),
    ("th", "Thai", "ไทย"),
    ("vi", "Vietnamese", "Tiếng Việt"),
    ("id", "Indonesian", "Bahasa Indonesia"),
    ("ms", "Malay", "Bahasa Melayu"),
    ("tl", "Filipino", "Filipino"),
    ("my", "Myanmar", "မြန်မာ"),
    ("nl", "Dutch", "Nederlands"),
    ("sv", "Swedish", "Svenska"),
    ("no", "Norwegian", "Norsk"),
    ("da", "Danish", "Dansk"),
    ("fi", "Finnish", "Suomi"),
    ("pl", "Polish", "Polski"),
    ("cs", "Czech", "Čeština"),
    ("sk", "Slovak", "Slovenčina"),
    ("hu", "Hungarian", "Magyar"),
    ("ro", "Romanian", "Română"),
    ("bg", "Bulgarian", "Български"),
    ("hr", "Croatian", "Hrvatski"),
    ("sr", "Serbian", "Српски"),
    ("uk", "Ukrainian", "Українська"),
    ("el", "Greek", "Ελληνικά"),
    ("tr", "Turkish", "Türkçe"),
    ("fa", "Persian", "فارسی"),
    ("kk", "Kazakh", "Қазақша"),
    ("ky", "Kyrgyz", "Кыргызча"),
    ("uz", "Uzbek", "Oʻzbekcha"),
    ("ca", "Catalan", "Català"),
    ("eu", "Basque", "Euskera"),
    ("ga", "Irish", "Gaeilge"),
    ("cy", "Welsh", "Cymraeg"),
    ("mt", "Maltese", "Malti"),
    ("is", "Icelandic", "Íslenska"),
    ("lv", "Latvian", "Latviešu"),
    ("lt", "Lithuanian", "Lietuvių"),
    ("et", "Estonian", "Eesti"),
    ("sl", "Slovenian", "Slovenščina"),
]

LANGUAGES: dict[str, Language] = {
    code: Language(code=code, name=name, native_name=native)
    for code, name, native in _LANGUAGE_ROWS
}

_BY_LOWER_CODE = {code.lower(): language for code, language in LANGUAGES.items()}

RTL_LANGUAGES = {"ar", "he", "fa", "ur"}


def get_language(code: str) -> Language | None:
    """Look up a language by code, ignoring case."""
    return LANGUAGES.get(code) or _BY_LOWER_CODE.get(code.lower())


def language_name(code: str) -> str:
    """Human-readable English name for a code, or the code itself if unknown."""
    if code == "auto":
        return "the detected source language"
    language = get_language(code)
    return language.name if language else code


def is_rtl(code: str) -> bool:
    """Whether the language is written right-to-left."""
    return code.split("-")[0].lower() in RTL_LANGUAGES
