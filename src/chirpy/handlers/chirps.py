"""
=============================================================================
CHIRP VALIDATION
=============================================================================

``POST /api/validate_chirp`` takes ``{"body": "<text>"}`` and answers with
the text cleaned of profanity, or with the reason it was refused.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request body                                                       │
    │       │                                                              │
    │       ├── not a JSON object with a string "body" ──► 500             │
    │       │       {"error": "Something went wrong"}     (logged)         │
    │       ▼                                                              │
    │   len(text) > 140 ─────────────────────────────► 400                 │
    │       │       {"error": "Chirp is too long"}        (not an error    │
    │       ▼                                              in the logs)    │
    │   clean_body(text) ────────────────────────────► 200                 │
    │               {"cleaned_body": "..."}                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CLEANING
=============================================================================

The text is split on single spaces. A word whose lowercase form is in the
denylist is replaced by ``****``; every other word is kept exactly as it
was. The words are joined back with single spaces.

    "This is a Kerfuffle opinion"   →  "This is a **** opinion"
    "fornax sharbert"               →  "**** ****"
    "Sharbert!"                     →  "Sharbert!"   (punctuation is part
                                                      of the word)

Because the split is on one space character, runs of spaces produce empty
words that are joined back unchanged: spacing survives cleaning.

=============================================================================
"""

import logging
import re
from typing import AbstractSet, Any

from ..http.request import HTTPRequest, HTTPParseError
from ..http.response import HTTPResponse, HTTPStatus, respond_with_json, respond_with_error


logger = logging.getLogger(__name__)

MAX_CHIRP_LENGTH = 140

PROFANE_WORDS: frozenset = frozenset({"kerfuffle", "sharbert", "fornax"})

MASK = "****"

TOO_LONG_MESSAGE = "Chirp is too long"
MALFORMED_MESSAGE = "Something went wrong"

# json.loads pairs valid surrogate escapes, so any left over are lone halves
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


class ChirpTooLongError(ValueError):
    """The chirp has more characters than the limit allows."""

    def __init__(self, length: int, max_length: int):
        super().__init__(f"chirp is {length} characters, limit is {max_length}")
        self.length = length
        self.max_length = max_length


class MalformedChirpError(ValueError):
    """The request body is not a JSON object with a string ``body``."""


def clean_body(text: str, banned_words: AbstractSet[str] = PROFANE_WORDS) -> str:
    """
    Mask denylisted words.

    >>> clean_body("I hate this Kerfuffle")
    'I hate this ****'
    """
    words = text.split(" ")
    return " ".join(MASK if word.lower() in banned_words else word for word in words)


def validate_chirp(
    text: str,
    max_length: int = MAX_CHIRP_LENGTH,
    banned_words: AbstractSet[str] = PROFANE_WORDS,
) -> str:
    """
    Check the length of a chirp and return it cleaned.

    Raises:
        ChirpTooLongError: ``len(text)`` is above ``max_length``.
    """
    if len(text) > max_length:
        raise ChirpTooLongError(len(text), max_length)
    return clean_body(text, banned_words)


def extract_body(payload: Any) -> str:
    """
    Pull the chirp text out of a decoded request body.

    A missing ``body`` key counts as an empty chirp. Lone surrogates from
    ``\\ud800``-style escapes become U+FFFD so the text can be sent back as UTF-8.

    Raises:
        MalformedChirpError: ``payload`` is not an object, or ``body`` is
            not a string.
    """
    if not isinstance(payload, dict):
        raise MalformedChirpError(f"expected a JSON object, got {type(payload).__name__}")
    text = payload.get("body", "")
    if not isinstance(text, str):
        raise MalformedChirpError(f'"body" must be a string, got {type(text).__name__}')
    return _LONE_SURROGATE.sub("\ufffd", text)


class ChirpHandler:
    """
    HTTP handler for chirp validation.

    The limit and the denylist default to the module constants and can be
    set per instance:

        strict = ChirpHandler(max_length=80, banned_words=PROFANE_WORDS | {"heck"})
    """

    def __init__(
        self,
        max_length: int = MAX_CHIRP_LENGTH,
        banned_words: AbstractSet[str] = PROFANE_WORDS,
    ):
        self.max_length = max_length
        self.banned_words = frozenset(w.lower() for w in banned_words)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        try:
            payload = request.json
            if payload is None:
                raise MalformedChirpError("request body is empty or null")
            text = extract_body(payload)
        except (HTTPParseError, MalformedChirpError) as e:
            logger.error("Error decoding chirp: %s", e)
            return respond_with_error(HTTPStatus.INTERNAL_SERVER_ERROR, MALFORMED_MESSAGE)

        try:
            cleaned = validate_chirp(text, self.max_length, self.banned_words)
        except ChirpTooLongError as e:
            logger.debug("Rejected chirp: %s", e)
            return respond_with_error(HTTPStatus.BAD_REQUEST, TOO_LONG_MESSAGE)

        return respond_with_json(HTTPStatus.OK, {"cleaned_body": cleaned})
