"""Pre-call cost estimates for paid AI operations.

Rates approximate public pricing and are only used for admission checks;
the ledger is always charged the realized cost.
"""

from decimal import Decimal

SPEECH_SYNTHESIS = "speech-synthesis"
TEXT_GENERATION = "text-generation"

DEFAULT_ESTIMATE = Decimal("0.01")
THOUSAND = Decimal("1000")

# Per character for speech, per 1K characters for text
COST_ESTIMATES: dict[str, dict[str, Decimal]] = {
    SPEECH_SYNTHESIS: {
        "tts": Decimal("0.0003"),
        "streaming": Decimal("0.0005"),
        "voice_clone": Decimal("0.10"),
    },
    TEXT_GENERATION: {
        "generate": Decimal("0.000125"),
        "analyze": Decimal("0.000375"),
    },
}


def estimate_cost(
    service: str,
    operation: str,
    text_length: int = 100,
    input_length: int = 1000,
    output_length: int = 500,
) -> Decimal:
    """Estimate the cost of an operation before running it.

    Args:
        service: Paid service name
        operation: Operation on that service
        text_length: Characters to synthesize (speech)
        input_length: Prompt characters (text generation)
        output_length: Expected response characters (text generation)

    Returns:
        Estimated cost; unknown service/operation pairs get a small default
    """
    rates = COST_ESTIMATES.get(service, {})
    rate = rates.get(operation)
    if rate is None:
        return DEFAULT_ESTIMATE

    if service == SPEECH_SYNTHESIS:
        if operation in ("tts", "streaming"):
            return text_length * rate
        return rate

    # Text generation: input at the generate rate, output at the analyze rate
    if operation == "generate":
        return (
            Decimal(input_length) / THOUSAND * rates["generate"]
            + Decimal(output_length) / THOUSAND * rates["analyze"]
        )
    return Decimal(input_length) / THOUSAND * rate
