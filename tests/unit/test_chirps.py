"""
Unit tests for chirp validation and cleaning.
"""

import json
import logging

import pytest

from chirpy.handlers.chirps import (
    ChirpHandler,
    ChirpTooLongError,
    MalformedChirpError,
    MAX_CHIRP_LENGTH,
    PROFANE_WORDS,
    clean_body,
    extract_body,
    validate_chirp,
)

from conftest import make_request, chirp_request


class TestCleanBody:

    def test_masks_denylisted_word(self):
        assert clean_body("This is a kerfuffle opinion I need to share with the world") == (
            "This is a **** opinion I need to share with the world"
        )

    def test_case_insensitive_match(self):
        assert clean_body("Sharbert KERFUFFLE Fornax") == "**** **** ****"

    def test_other_words_keep_their_case(self):
        assert clean_body("Hello World") == "Hello World"

    def test_only_profanity(self):
        assert clean_body("fornax sharbert") == "**** ****"

    def test_punctuation_is_part_of_word(self):
        assert clean_body("Sharbert! kerfuffle.") == "Sharbert! kerfuffle."

    def test_spacing_preserved(self):
        assert clean_body("  fornax   ok ") == "  ****   ok "

    def test_empty(self):
        assert clean_body("") == ""

    def test_custom_denylist(self):
        assert clean_body("well heck", banned_words={"heck"}) == "well ****"

    def test_deterministic(self):
        text = "kerfuffle in the Fornax cluster"

        assert clean_body(text) == clean_body(text)


class TestValidateChirp:

    def test_exactly_at_limit(self):
        text = "a" * MAX_CHIRP_LENGTH

        assert validate_chirp(text) == text

    def test_over_limit(self):
        with pytest.raises(ChirpTooLongError) as exc_info:
            validate_chirp("a" * (MAX_CHIRP_LENGTH + 1))

        assert exc_info.value.length == MAX_CHIRP_LENGTH + 1
        assert exc_info.value.max_length == MAX_CHIRP_LENGTH

    def test_length_counts_characters(self):
        text = "é" * MAX_CHIRP_LENGTH

        assert len(text.encode("utf-8")) > MAX_CHIRP_LENGTH
        assert validate_chirp(text) == text

    def test_length_checked_before_cleaning(self):
        # cleaning shortens "kerfuffle" to "****"; the original length counts
        text = "kerfuffle " * 14 + "x"

        with pytest.raises(ChirpTooLongError):
            validate_chirp(text)

    def test_custom_limit(self):
        with pytest.raises(ChirpTooLongError):
            validate_chirp("abcdef", max_length=5)


class TestExtractBody:

    def test_string_body(self):
        assert extract_body({"body": "hi"}) == "hi"

    def test_missing_body_is_empty(self):
        assert extract_body({}) == ""

    def test_extra_keys_ignored(self):
        assert extract_body({"body": "hi", "author": "me"}) == "hi"

    def test_key_is_case_sensitive(self):
        assert extract_body({"Body": "hi"}) == ""

    def test_lone_surrogate_replaced(self):
        assert extract_body({"body": "a\ud800b"}) == "a\ufffdb"

    def test_surrogate_pair_kept(self):
        assert extract_body(json.loads(r'{"body": "\ud83d\ude00"}')) == "\U0001f600"

    @pytest.mark.parametrize("payload", [[], "body", 42, True])
    def test_non_object_rejected(self, payload):
        with pytest.raises(MalformedChirpError):
            extract_body(payload)

    @pytest.mark.parametrize("value", [None, 42, ["a"], {"a": 1}])
    def test_non_string_body_rejected(self, value):
        with pytest.raises(MalformedChirpError):
            extract_body({"body": value})


class TestChirpHandler:

    def test_valid_chirp(self):
        response = ChirpHandler().handle(chirp_request({"body": "I had something interesting for breakfast"}))

        assert response.status == 200
        assert response.headers["Content-Type"] == "application/json"
        assert json.loads(response.body) == {
            "cleaned_body": "I had something interesting for breakfast"
        }

    def test_profanity_cleaned(self):
        response = ChirpHandler().handle(chirp_request({"body": "I hear Mastodon is better than Chirpy. sharbert I need to migrate"}))

        assert json.loads(response.body) == {
            "cleaned_body": "I hear Mastodon is better than Chirpy. **** I need to migrate"
        }

    def test_too_long(self):
        response = ChirpHandler().handle(chirp_request({"body": "x" * 141}))

        assert response.status == 400
        assert json.loads(response.body) == {"error": "Chirp is too long"}

    def test_too_long_not_logged_as_error(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="chirpy.handlers.chirps"):
            ChirpHandler().handle(chirp_request({"body": "x" * 500}))

        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

    def test_missing_body_key(self):
        response = ChirpHandler().handle(chirp_request({}))

        assert response.status == 200
        assert json.loads(response.body) == {"cleaned_body": ""}

    def test_malformed_json(self, caplog):
        request = make_request(
            "POST", "/api/validate_chirp",
            body=b'{"body": "unterminated',
            headers={"Content-Type": "application/json"},
        )

        with caplog.at_level(logging.ERROR, logger="chirpy.handlers.chirps"):
            response = ChirpHandler().handle(request)

        assert response.status == 500
        assert json.loads(response.body) == {"error": "Something went wrong"}
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_empty_request_body(self):
        response = ChirpHandler().handle(make_request("POST", "/api/validate_chirp"))

        assert response.status == 500
        assert json.loads(response.body) == {"error": "Something went wrong"}

    @pytest.mark.parametrize("payload", [None, [1, 2], {"body": 12}, {"body": None}])
    def test_wrong_shapes(self, payload):
        response = ChirpHandler().handle(chirp_request(payload))

        assert response.status == 500
        assert json.loads(response.body) == {"error": "Something went wrong"}

    def test_content_type_not_required(self):
        request = make_request("POST", "/api/validate_chirp", body=b'{"body": "hi"}')

        assert ChirpHandler().handle(request).status == 200

    def test_custom_handler_settings(self):
        handler = ChirpHandler(max_length=10, banned_words={"Heck"})

        assert handler.handle(chirp_request({"body": "x" * 11})).status == 400
        assert json.loads(handler.handle(chirp_request({"body": "oh heck"})).body) == {
            "cleaned_body": "oh ****"
        }

    def test_default_denylist(self):
        assert PROFANE_WORDS == {"kerfuffle", "sharbert", "fornax"}

    def test_lone_surrogate_escape_is_valid(self):
        request = make_request(
            "POST", "/api/validate_chirp",
            body=b'{"body": "hi \\ud800 fornax"}',
        )

        response = ChirpHandler().handle(request)

        assert response.status == 200
        assert json.loads(response.body) == {"cleaned_body": "hi \ufffd ****"}

    def test_trailing_data_is_malformed(self):
        request = make_request(
            "POST", "/api/validate_chirp",
            body=b'{"body": "hi"} {"body": "again"}',
        )

        assert ChirpHandler().handle(request).status == 500
