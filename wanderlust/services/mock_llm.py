"""
Mock LLM Client - Document-grounded offline edition.
Answers only from the document text contained in the prompt. No network, no invented facts.
"""
import re
import json
import logging
from typing import Optional

from .prompts import DOCUMENT_BEGIN, DOCUMENT_END, NOT_FOUND_ANSWER

logger = logging.getLogger(__name__)

PAGE_MARKER = re.compile(r"^--- Page (\d+) ---$")
DATE_PATTERN = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
TIME_PATTERN = re.compile(r"\b([01]?\d|2[0-3]):([0-5]\d)\b")
DESTINATION_PATTERN = re.compile(r"\bdestination\s*:\s*(.+)", re.IGNORECASE)

CATEGORY_KEYWORDS = {
    "flight": ("flight", "airport", "departure", "boarding", "airline"),
    "hotel": ("hotel", "check-in", "check in", "checkout", "check-out", "resort", "hostel"),
    "food": ("dinner", "lunch", "breakfast", "restaurant", "cafe", "brunch"),
    "activity": ("tour", "museum", "visit", "excursion", "hike", "show", "tickets"),
}

STOPWORDS = {
    "what", "when", "where", "which", "who", "how", "does", "have", "there", "about",
    "this", "that", "with", "from", "your", "mine", "into", "will", "would", "could",
    "should", "document", "trip", "time", "tell",
}


class MockLLMClient:
    """
    Grounded Mock LLM Client.
    Source of truth: the document text embedded in the messages.
    """

    def __init__(self):
        self.model = "mock-document-grounded"

    async def chat(
        self,
        messages: list[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        schema: Optional[dict] = None
    ) -> str:
        """Process chat grounding it in the document text."""
        user_msg = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
        system_msg = next((m["content"] for m in messages if m["role"] == "system"), "")

        if schema is not None:
            return json.dumps(self._summarize(self._document_from(user_msg) or user_msg))

        document = self._document_from(system_msg)
        if not document:
            return NOT_FOUND_ANSWER
        return self._answer(user_msg, document)

    def _document_from(self, directive: str) -> str:
        start = directive.find(DOCUMENT_BEGIN)
        end = directive.find(DOCUMENT_END)
        if start == -1 or end <= start:
            return ""
        return directive[start + len(DOCUMENT_BEGIN):end].strip()

    def _paged_lines(self, text: str) -> list[tuple[int, str]]:
        """Split text into (page number, line) pairs."""
        page = 1
        lines = []
        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue
            marker = PAGE_MARKER.match(line)
            if marker:
                page = int(marker.group(1))
                continue
            lines.append((page, line))
        return lines

    def _categorize(self, line: str) -> str:
        lowered = line.lower()
        for category, keywords in CATEGORY_KEYWORDS.items():
            if any(kw in lowered for kw in keywords):
                return category
        return "other"

    def _summarize(self, document: str) -> dict:
        """Build an itinerary from lines carrying a date (and maybe a time)."""
        events = []
        destination = "Unknown"
        for _, line in self._paged_lines(document):
            dest_match = DESTINATION_PATTERN.search(line)
            if dest_match and destination == "Unknown":
                destination = dest_match.group(1).strip()

            date_match = DATE_PATTERN.search(line)
            if not date_match:
                continue
            time_match = TIME_PATTERN.search(line[date_match.end():]) or TIME_PATTERN.search(line)
            time = f"{int(time_match.group(1)):02d}:{time_match.group(2)}" if time_match else "09:00"

            activity = DATE_PATTERN.sub("", line)
            activity = TIME_PATTERN.sub("", activity).strip(" -:,|\t")
            events.append({
                "date": date_match.group(1),
                "time": time,
                "activity": activity or line,
                "location": "",
                "type": self._categorize(line),
            })

        dates = sorted(e["date"] for e in events)
        return {
            "title": f"Trip to {destination}" if destination != "Unknown" else "My Trip",
            "destination": destination,
            "dates": f"{dates[0]} - {dates[-1]}" if dates else "Upcoming",
            "events": events,
            "suggestedQuestions": [
                f"What happens on {d}?" for d in dict.fromkeys(dates)
            ][:3] or ["What is in this document?"],
        }

    def _answer(self, question: str, document: str) -> str:
        """Quote the document lines sharing a keyword with the question."""
        keywords = {
            w for w in re.findall(r"[a-z0-9][a-z0-9\-]+", question.lower())
            if len(w) > 3 and w not in STOPWORDS
        }
        if not keywords:
            return NOT_FOUND_ANSWER

        hits = [
            (page, line) for page, line in self._paged_lines(document)
            if any(kw in line.lower() for kw in keywords)
        ]
        if not hits:
            return NOT_FOUND_ANSWER

        logger.debug(f"Mock answer from {len(hits)} matching lines")
        bullets = "\n".join(f"- {line} [Page {page}]" for page, line in hits[:5])
        return f"Here is what your itinerary says:\n\n{bullets}"
