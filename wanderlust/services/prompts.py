"""
Prompt text shared by the extraction engine, the conversation and the mock provider.
"""

DOCUMENT_BEGIN = "--- BEGIN DOCUMENT CONTENT ---"
DOCUMENT_END = "--- END DOCUMENT CONTENT ---"

NOT_FOUND_ANSWER = "I couldn't find that information in your uploaded itinerary."

CHAT_ERROR_APOLOGY = (
    "I'm sorry, I encountered an error connecting to the AI. "
    "Please check your API key or internet connection."
)

CHAT_SYSTEM_PROMPT = """You are an expert Travel Assistant AI.
The user has uploaded a travel itinerary or document.
Your goal is to answer questions STRICTLY based on the content provided below.

Rules:
1. If the answer is found in the document, provide it clearly and concisely.
2. ALWAYS cite the page number if possible, using the format [Page X].
3. If the answer is NOT in the document, explicitly say "{not_found}"
4. Do not make up dates, times, or flight numbers.
5. Be helpful, friendly, and act like a personal concierge.
6. Format your answers nicely (use bullet points for lists, bold for times/dates).

{begin}
{document}
{end}"""

EXTRACTION_PROMPT = """Analyze the following travel document and extract a structured itinerary summary.

RULES:
- Events use dates in YYYY-MM-DD format. Infer the year from the document or use the current year.
- Times use HH:MM (24h) format. Use 09:00 if a specific time is missing.
- Event type is one of: flight, hotel, activity, food, other.
- Location is the place name if available, else an empty string.
- Suggest 3 specific questions the traveller could ask about this document.
- Return ONLY a JSON object matching the schema.

{begin}
{document}
{end}"""


def build_chat_directive(document_text: str) -> str:
    """System directive binding every chat turn to the document."""
    return CHAT_SYSTEM_PROMPT.format(
        not_found=NOT_FOUND_ANSWER,
        begin=DOCUMENT_BEGIN,
        document=document_text,
        end=DOCUMENT_END,
    )


def build_extraction_prompt(document_text: str) -> str:
    return EXTRACTION_PROMPT.format(
        begin=DOCUMENT_BEGIN,
        document=document_text,
        end=DOCUMENT_END,
    )
