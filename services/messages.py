"""User-facing canned replies in English and Myanmar.

Lookups fall back to English for any language without a catalog entry.
"""

from __future__ import annotations

_CATALOG: dict[str, dict[str, str]] = {
    "en": {
        "quiz_intro": "Here is your random question:",
        "quiz_next": "Next question ({number}/{total}):",
        "quiz_correct": "✅ Correct!",
        "quiz_incorrect": "❌ Not quite. The correct answer is: **{answer}**",
        "quiz_explanation": "💡 {explanation}",
        "quiz_summary": "🏁 Round complete! Your score: **{score}/{total}**",
        "quiz_perfect": "Perfect score. Outstanding security awareness!",
        "quiz_pass": "Well done, you passed. Keep sharpening your skills.",
        "quiz_keep_learning": "Keep learning! Review the explanations and try again.",
        "quiz_continue": "Type **continue** to play another round or **stop** to finish.",
        "quiz_closing": "Thanks for playing! Switch modes any time, or type **start** to quiz again.",
        "quiz_prompt_start": "Type **start** to begin the cybersecurity quiz.",
        "quiz_empty_bank": "No quiz questions found in system.",
        "analysis_fallback_note": (
            "⚠️ The visual analysis dashboard could not be generated. "
            "A text report follows."
        ),
        "analysis_summary": "Risk level: **{risk}** (safety score {score}/100)",
        "error_overloaded": (
            "⚠️ All AI providers are busy or unavailable right now. "
            "Please try again in a few minutes."
        ),
        "error_misconfigured": (
            "⚠️ The AI service is not configured correctly. "
            "Please contact the administrator."
        ),
    },
    "my": {
        "quiz_intro": "ဤသည်မှာ သင်၏ကျပန်းမေးခွန်းဖြစ်သည်-",
        "quiz_next": "နောက်မေးခွန်း ({number}/{total})-",
        "quiz_correct": "✅ မှန်ပါသည်!",
        "quiz_incorrect": "❌ မှားပါသည်။ အဖြေမှန်မှာ **{answer}** ဖြစ်သည်။",
        "quiz_explanation": "💡 {explanation}",
        "quiz_summary": "🏁 အဆင့်ပြီးဆုံးပါပြီ! သင့်ရမှတ်- **{score}/{total}**",
        "quiz_perfect": "ရမှတ်ပြည့်ပါသည်။ အလွန်ကောင်းမွန်ပါသည်!",
        "quiz_pass": "အောင်မြင်ပါသည်။ ဆက်လက်လေ့ကျင့်ပါ။",
        "quiz_keep_learning": "ဆက်လက်လေ့လာပါ! ရှင်းလင်းချက်များကို ပြန်ဖတ်ပြီး ထပ်ကြိုးစားပါ။",
        "quiz_continue": "နောက်တစ်ကြိမ်ကစားရန် **continue** သို့မဟုတ် ရပ်ရန် **stop** ဟု ရိုက်ပါ။",
        "quiz_closing": "ကစားပေးသည့်အတွက် ကျေးဇူးတင်ပါသည်! ထပ်ကစားလိုပါက **start** ဟု ရိုက်ပါ။",
        "quiz_prompt_start": "ပဟေဠိစတင်ရန် **start** ဟု ရိုက်ပါ။",
        "quiz_empty_bank": "စနစ်အတွင်း ပဟေဠိမေးခွန်းများ မတွေ့ရှိပါ။",
        "analysis_fallback_note": (
            "⚠️ ရုပ်ပုံဖြင့် ခွဲခြမ်းစိတ်ဖြာချက် မထုတ်နိုင်ပါ။ စာသားအစီရင်ခံစာ အောက်တွင်ပါရှိသည်။"
        ),
        "analysis_summary": "အန္တရာယ် အဆင့်- **{risk}** (လုံခြုံမှုရမှတ် {score}/100)",
        "error_overloaded": (
            "⚠️ AI ဝန်ဆောင်မှုများ လောလောဆယ် အလုပ်များနေပါသည်။ မိနစ်အနည်းငယ်အကြာတွင် ထပ်ကြိုးစားပါ။"
        ),
        "error_misconfigured": (
            "⚠️ AI ဝန်ဆောင်မှုကို မှန်ကန်စွာ မပြင်ဆင်ရသေးပါ။ စီမံခန့်ခွဲသူထံ ဆက်သွယ်ပါ။"
        ),
    },
}


def t(key: str, language: str = "en", **params: object) -> str:
    """Localized message *key*, formatted with *params*."""
    lang = (language or "en").strip().lower()
    catalog = _CATALOG.get(lang, _CATALOG["en"])
    template = catalog.get(key) or _CATALOG["en"][key]
    return template.format(**params) if params else template
