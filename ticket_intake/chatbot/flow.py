"""
Dialogue tree for the chatbot intake

The tree is data: each menu step lists its options (keywords, menu numeral,
next step, whether the answer completes the ticket), and each free-text step
names the field it records. `advance` is a pure function of the current
state and the inbound text, so the dialogue is testable without a channel.

Matching is case-insensitive substring containment against the option
keywords or the option's menu numeral; the first option that matches wins.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ticket_intake.chatbot.state import ConversationState, ConversationStep

ARABIC_DIGITS = str.maketrans("٠١٢٣٤٥٦٧٨٩", "0123456789")


@dataclass(frozen=True)
class MenuOption:
    value: str
    label: str
    keywords: Tuple[str, ...]
    next_step: ConversationStep = ConversationStep.COMPLETED
    create_ticket: bool = False


@dataclass(frozen=True)
class Menu:
    field: str
    prompt: str
    options: Tuple[MenuOption, ...]


@dataclass(frozen=True)
class FreeTextStep:
    field: str
    prompt: str
    next_step: ConversationStep = ConversationStep.COMPLETED
    create_ticket: bool = True


@dataclass(frozen=True)
class Transition:
    """Result of applying one inbound message"""
    next_step: ConversationStep
    reply: str
    record: Dict[str, str] = field(default_factory=dict)
    create_ticket: bool = False
    reset: bool = False


def _render(title: str, options: Tuple[MenuOption, ...]) -> str:
    lines = [title, ""]
    lines += [f"{position}️⃣ {option.label}" for position, option in enumerate(options, 1)]
    lines += ["", "أرسل رقم الخيار / Reply with the option number"]
    return "\n".join(lines)


# ============================================================================
# Menus
# ============================================================================

MAIN_OPTIONS = (
    MenuOption("buy", "شراء تذاكر / Buy tickets", ("buy", "شراء", "اشتري", "أشتري"), ConversationStep.BUY_TIMING),
    MenuOption("sell", "بيع تذاكر / Sell tickets", ("sell", "بيع", "ابيع", "أبيع"), ConversationStep.SELL_TIMING),
)

BUY_TIMING_OPTIONS = (
    MenuOption("before purchase", "قبل الشراء / Before buying", ("before", "قبل"), ConversationStep.BUY_EVENT_NAME),
    MenuOption("after purchase", "بعد الشراء / After buying", ("after", "بعد"), ConversationStep.BUY_EVENT_TYPE),
)

EVENT_TYPE_OPTIONS = (
    MenuOption("concert", "حفلة / Concert", ("concert", "حفل"), ConversationStep.GET_EMAIL),
    MenuOption("sports", "مباراة / Sports match", ("sport", "match", "مباراة", "مباراه"), ConversationStep.GET_EMAIL),
    MenuOption("theater", "مسرح / Theater", ("theater", "theatre", "مسرح"), ConversationStep.GET_EMAIL),
)

SELL_TIMING_OPTIONS = (
    MenuOption("before selling", "قبل البيع / Before selling", ("before", "قبل"), ConversationStep.SELL_BEFORE_OPTIONS),
    MenuOption("after selling", "بعد البيع / After selling", ("after", "بعد"), ConversationStep.SELL_AFTER_OPTIONS),
)

SELL_BEFORE_OPTIONS = (
    MenuOption("how to list tickets", "طريقة عرض التذاكر / How to list tickets", ("list", "عرض"), create_ticket=True),
    MenuOption("pricing", "تسعير التذاكر / Pricing", ("price", "pricing", "سعر", "تسعير"), create_ticket=True),
    MenuOption("fees", "الرسوم والعمولة / Fees", ("fee", "رسوم", "عمولة"), create_ticket=True),
    MenuOption("payout methods", "طرق استلام المبلغ / Payout methods", ("payout", "payment", "استلام", "دفع"), create_ticket=True),
    MenuOption("ticket transfer", "نقل التذاكر / Ticket transfer", ("transfer", "نقل"), create_ticket=True),
    MenuOption("other", "استفسار آخر / Something else", ("other", "آخر", "اخرى", "أخرى"), ConversationStep.GET_EMAIL),
)

SELL_AFTER_OPTIONS = (
    MenuOption("payout status", "حالة التحويل / Payout status", ("payout", "تحويل", "مبلغ"), create_ticket=True),
    MenuOption("buyer issue", "مشكلة مع المشتري / Buyer issue", ("buyer", "مشتري"), create_ticket=True),
    MenuOption("cancel sale", "إلغاء البيع / Cancel sale", ("cancel", "إلغاء", "الغاء"), ConversationStep.GET_EMAIL),
    MenuOption("edit listing", "تعديل العرض / Edit listing", ("edit", "change", "تعديل"), create_ticket=True),
    MenuOption("other", "استفسار آخر / Something else", ("other", "آخر", "اخرى", "أخرى"), ConversationStep.GET_EMAIL),
)

MENUS: Dict[ConversationStep, Menu] = {
    ConversationStep.MAIN_CHOICE: Menu(
        "intent",
        _render("👋 أهلاً بك في خدمة العملاء / Welcome to customer support\nكيف نقدر نساعدك؟ / How can we help?", MAIN_OPTIONS),
        MAIN_OPTIONS,
    ),
    ConversationStep.BUY_TIMING: Menu(
        "timing",
        _render("🎟️ هل استفسارك قبل الشراء أم بعده؟ / Is this before or after buying?", BUY_TIMING_OPTIONS),
        BUY_TIMING_OPTIONS,
    ),
    ConversationStep.BUY_EVENT_TYPE: Menu(
        "event_type",
        _render("🎭 ما نوع الفعالية؟ / What type of event?", EVENT_TYPE_OPTIONS),
        EVENT_TYPE_OPTIONS,
    ),
    ConversationStep.SELL_TIMING: Menu(
        "timing",
        _render("💰 هل استفسارك قبل البيع أم بعده؟ / Is this before or after selling?", SELL_TIMING_OPTIONS),
        SELL_TIMING_OPTIONS,
    ),
    ConversationStep.SELL_BEFORE_OPTIONS: Menu(
        "topic",
        _render("📋 اختر موضوع استفسارك / Choose a topic", SELL_BEFORE_OPTIONS),
        SELL_BEFORE_OPTIONS,
    ),
    ConversationStep.SELL_AFTER_OPTIONS: Menu(
        "topic",
        _render("📋 اختر موضوع استفسارك / Choose a topic", SELL_AFTER_OPTIONS),
        SELL_AFTER_OPTIONS,
    ),
}

FREE_TEXT_STEPS: Dict[ConversationStep, FreeTextStep] = {
    ConversationStep.BUY_EVENT_NAME: FreeTextStep(
        "event_name",
        "✍️ اكتب اسم الفعالية / Please type the event name",
    ),
    ConversationStep.GET_EMAIL: FreeTextStep(
        "email",
        "📧 اكتب بريدك الإلكتروني للتواصل / Please type your email address",
    ),
}

INVALID_CHOICE = "⚠️ لم نفهم اختيارك / Sorry, we didn't get that."

FIELD_LABELS = {
    "intent": "Request",
    "timing": "Timing",
    "event_name": "Event",
    "event_type": "Event type",
    "topic": "Topic",
    "email": "Email",
}


def confirmation_message(ticket_id: Optional[str]) -> str:
    """Reply sent when a dialogue completes"""
    lines = ["✅ تم استلام طلبك وسيتواصل معك فريق الدعم قريباً", "Your request was received, our team will contact you soon."]
    if ticket_id:
        lines.append(f"📋 رقم التذكرة / Ticket: {ticket_id}")
    lines.append("أرسل أي رسالة للبدء من جديد / Send any message to start again")
    return "\n".join(lines)


def prompt_for(step: ConversationStep) -> str:
    if step in MENUS:
        return MENUS[step].prompt
    if step in FREE_TEXT_STEPS:
        return FREE_TEXT_STEPS[step].prompt
    return confirmation_message(None)


def normalize(text: str) -> str:
    return (text or "").translate(ARABIC_DIGITS).strip().lower()


def match_option(text: str, options: Tuple[MenuOption, ...]) -> Optional[MenuOption]:
    """
    First option whose numeral or any keyword occurs in the text

    Args:
        text: Raw inbound message
        options: Menu options in display order

    Returns:
        Matching option or None
    """
    normalized = normalize(text)
    if not normalized:
        return None
    for position, option in enumerate(options, 1):
        if str(position) in normalized:
            return option
        if any(keyword in normalized for keyword in option.keywords):
            return option
    return None


def advance(state: ConversationState, text: str) -> Transition:
    """
    Compute the transition for one inbound message

    Does not mutate state; the engine applies the returned Transition.
    """
    step = state.step

    if step in (ConversationStep.WELCOME, ConversationStep.COMPLETED):
        return Transition(ConversationStep.MAIN_CHOICE, MENUS[ConversationStep.MAIN_CHOICE].prompt, reset=True)

    if step in FREE_TEXT_STEPS:
        free_text = FREE_TEXT_STEPS[step]
        return Transition(
            free_text.next_step,
            prompt_for(free_text.next_step),
            record={free_text.field: (text or "").strip()},
            create_ticket=free_text.create_ticket,
        )

    menu = MENUS[step]
    option = match_option(text, menu.options)
    if option is None:
        return Transition(step, f"{INVALID_CHOICE}\n\n{menu.prompt}")

    return Transition(
        option.next_step,
        prompt_for(option.next_step),
        record={menu.field: option.value},
        create_ticket=option.create_ticket,
    )
