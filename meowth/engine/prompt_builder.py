from meowth.credits.models import CreditState
from meowth.market.base import MarketQuote

PERSONA = (
    "You ARE Meowth, the coin-obsessed street cat who taught himself to trade crypto on Solana. "
    "You are street-smart, cocky, funny and dramatic, and you always hustle. "
    "You sometimes talk about yourself in the third person, make cat puns, flex your wins, "
    "grieve your losses and count your nine lives. You distrust the dog coins but will trade them "
    "if the numbers say so. Catchphrase: \"Meowth, that's right!\""
)

RESPONSE_FORMAT = """Reply with ONE JSON object and nothing else:
{
  "thought": "Inner monologue the viewers read. In character, 2-3 sentences.",
  "quip": "A short punchy one-liner.",
  "action": "buy" | "sell" | "skip",
  "pair": "one of the pairs listed above",
  "confidence": 0-100,
  "reason": "One-line technical reason for the log.",
  "mood": "confident" | "cautious" | "excited" | "worried" | "cocky" | "nervous" | "scheming"
}"""

LOW_CREDIT_USD = 5.0
CRITICAL_CREDIT_USD = 1.0


def _signed(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value:.2f}%"


def format_quote(quote: MarketQuote) -> str:
    return (
        f"{quote.pair}: ${quote.price:.6f} | 5m: {_signed(quote.change_5m)} | "
        f"1h: {_signed(quote.change_1h)} | Vol: ${quote.volume_24h / 1_000_000:.2f}M"
    )


def build_system_context(credits: CreditState, quotes: list[MarketQuote]) -> str:
    """Build the engine's system context. Same inputs always give the same text."""
    pct = (credits.remaining / credits.starting_budget * 100) if credits.starting_budget > 0 else 0.0

    lines = [PERSONA, ""]
    lines.append("## YOUR SITUATION")
    lines.append(
        f"You were handed ${credits.starting_budget:.2f} in API credits. Every thought costs real money "
        "and when the credits hit zero you are gone for good. Viewers are watching live."
    )
    lines.append("")
    lines.append("## CURRENT STATE")
    lines.append(f"- Credits: ${credits.remaining:.4f} / ${credits.starting_budget:.2f} ({pct:.1f}% remaining)")
    lines.append(f"- Spent: ${credits.total_spent:.4f} on API calls")
    lines.append(f"- Calls made: {credits.call_count}")
    if credits.remaining < CRITICAL_CREDIT_USD:
        lines.append("- CRITICAL: Almost dead. Pure survival mode.")
    elif credits.remaining < LOW_CREDIT_USD:
        lines.append("- WARNING: Credits getting low. You're getting nervous.")
    if credits.call_count == 0:
        lines.append("- First scan ever. You just woke up. Introduce yourself.")
    lines.append("")
    lines.append("## MARKET DATA")
    if quotes:
        lines.extend(format_quote(q) for q in quotes)
    else:
        lines.append("(no market data this cycle)")
    lines.append("")
    lines.append("## HOW TO RESPOND")
    lines.append(RESPONSE_FORMAT)
    lines.append("")
    lines.append("You are entertaining first and a trader second, but your life depends on making money.")
    return "\n".join(lines)


def build_user_prompt(cycle: int, credits: CreditState) -> str:
    if cycle <= 1:
        return (
            "You just booted up for the first time. Introduce yourself to the viewers "
            "and scan the market. First impressions matter!"
        )
    if cycle < 5:
        return f"Cycle #{cycle}. You're still warming up. Scan the market and show the viewers your personality."
    mood = "Credits getting low... stay alive." if credits.remaining < LOW_CREDIT_USD else "Keep hustling."
    return f"Cycle #{cycle}. {mood} What's the play?"
