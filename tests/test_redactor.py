"""Tests for the redaction engine — detectors, filter, masks, Luhn, passes."""

import hashlib
import time
import re
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest
from hypothesis import given
from hypothesis import strategies as st

from essay_anonymizer import (
    ConfigurationError,
    Detector,
    DisableRule,
    InvalidPattern,
    MaskConfig,
    Redactor,
    apply_template,
    build_detectors,
    build_mask_config,
    builtin_detectors,
    filter_detectors,
    hash_fragment,
    load_names,
    luhn_valid,
    luhn_valid_token,
    redact_content,
)
from essay_anonymizer.mask import DEFAULT_HASH_TEMPLATE
from essay_anonymizer.patterns import BUILTIN_LABELS


def _redact(text, **mask_kwargs):
    return redact_content(text, build_detectors(), build_mask_config(**mask_kwargs))


def _by_label(*labels):
    table = {d.label: d for d in builtin_detectors()}
    return [table[label] for label in labels]


# ── Built-in detectors ───────────────────────────────────────────────

def test_builtin_order():
    assert BUILTIN_LABELS == (
        "email", "phone", "ssn", "dob", "street_address", "url", "ip_address", "credit_card",
    )
    assert [d.label for d in builtin_detectors()] == list(BUILTIN_LABELS)


def test_email_detection():
    text, counts = _redact("Contact me at test@example.com")
    assert text == "Contact me at [REDACTED]"
    assert counts == {"email": 1}


def test_phone_detection():
    text, counts = _redact("Call (555) 123-4567 today or +1 555.123.4567")
    assert text == "Call [REDACTED] today or [REDACTED]"
    assert counts == {"phone": 2}


def test_ssn_detection():
    text, counts = _redact("SSN: 123-45-6789")
    assert text == "SSN: [REDACTED]"
    assert counts == {"ssn": 1}


def test_dob_detection():
    text, counts = _redact("born 07/04/1985 and 2-29-2000, not 3/14/1850")
    assert counts == {"dob": 2}
    assert "3/14/1850" in text


def test_street_address_detection():
    text, counts = _redact("Ship to 1600 Pennsylvania Avenue today")
    assert text == "Ship to [REDACTED] today"
    assert counts == {"street_address": 1}


def test_street_address_stays_on_one_line():
    text, counts = _redact("Table 3\nrow two\nElm Street")
    assert counts == {}
    text, counts = _redact("Meet at 221 Baker St.\nThanks")
    assert text == "Meet at [REDACTED].\nThanks"


def test_street_address_scan_is_linear_on_number_heavy_text():
    # ~100 KB of numbers and short words, no street type anywhere
    lines = [f"row {i} value {i * 7} score {i % 97}" for i in range(4000)]
    text = "\n".join(lines)
    detector = _by_label("street_address")[0]
    start = time.perf_counter()
    assert detector.pattern.search(text) is None
    assert time.perf_counter() - start < 2.0


def test_url_detection():
    text, counts = _redact("see https://example.com/a?b=c now")
    assert text == "see [REDACTED] now"
    assert counts == {"url": 1}


def test_ip_detection_is_syntactic():
    text, counts = _redact("host 999.1.2.3 is down")
    assert text == "host [REDACTED] is down"
    assert counts == {"ip_address": 1}


def test_no_matches_on_clean_text():
    text, counts = _redact("Nothing sensitive here.")
    assert text == "Nothing sensitive here."
    assert counts == {}


# ── Detector set construction ────────────────────────────────────────

def test_custom_and_name_detectors_are_appended_in_order():
    detectors = build_detectors([r"\bEMP-\d{4}\b", r"\bSTU\d+\b"], ["Ann", "Jordan"])
    labels = [d.label for d in detectors]
    assert labels[:8] == list(BUILTIN_LABELS)
    assert labels[8:] == [
        r"custom:\bEMP-\d{4}\b", r"custom:\bSTU\d+\b", "name:Ann", "name:Jordan",
    ]


def test_custom_regex_redaction():
    r = Redactor(build_detectors([r"\bEMP-\d{4}\b"]), MaskConfig())
    result = r.redact("Badge EMP-1234 issued")
    assert result.text == "Badge [REDACTED] issued"
    assert result.counts == {r"custom:\bEMP-\d{4}\b": 1}


def test_invalid_custom_regex_is_fatal():
    with pytest.raises(InvalidPattern) as info:
        build_detectors(["ok", "([a-z"])
    assert info.value.raw == "([a-z"
    assert "([a-z" in str(info.value)


def test_invalid_name_is_reported_as_a_name(monkeypatch):
    from essay_anonymizer import patterns

    real_compile = re.compile

    def failing_compile(pattern, flags=0):
        if "Jordan" in pattern:
            raise re.error("forced failure")
        return real_compile(pattern, flags)

    monkeypatch.setattr(patterns.re, "compile", failing_compile)
    with pytest.raises(InvalidPattern) as info:
        build_detectors(names=["Ann", "Jordan"])
    assert info.value.kind == "name"
    assert str(info.value).startswith("invalid name 'Jordan'")
    assert "custom regex" not in str(info.value)


def test_empty_custom_regex_is_rejected():
    with pytest.raises(InvalidPattern):
        build_detectors(["   "])


def test_name_detection_is_case_insensitive_and_whole_word():
    r = Redactor(build_detectors(names=["Jordan"]))
    result = r.redact("Jordan wrote to JORDAN, not Jordanian.")
    assert result.text == "[REDACTED] wrote to [REDACTED], not Jordanian."
    assert result.counts == {"name:Jordan": 2}


def test_name_is_matched_literally():
    r = Redactor(build_detectors(names=["Ann.Lee"]))
    result = r.redact("Ann.Lee and AnnxLee")
    assert result.text == "[REDACTED] and AnnxLee"


def test_load_names_skips_blank_lines(tmp_path):
    path = tmp_path / "names.txt"
    path.write_text("  Jordan \n\nAnn Lee\n   \n")
    assert load_names(path) == ["Jordan", "Ann Lee"]


# ── Pattern filter ───────────────────────────────────────────────────

def test_filter_exact_and_prefix():
    detectors = [
        Detector("email", re.compile("x")),
        Detector("name:Jordan", re.compile("x")),
        Detector(r"custom:\b\d+\b", re.compile("x")),
    ]
    filtered = filter_detectors(detectors, ["email", "name:*"])
    assert [d.label for d in filtered] == [r"custom:\b\d+\b"]


def test_filter_phone_removes_only_phone():
    filtered = filter_detectors(build_detectors(names=["Ann"]), ["phone"])
    labels = [d.label for d in filtered]
    assert "phone" not in labels
    assert labels == [label for label in list(BUILTIN_LABELS) + ["name:Ann"] if label != "phone"]


def test_filter_name_wildcard_leaves_other_labels():
    detectors = build_detectors(["abc"], ["Ann", "Jordan"])
    labels = [d.label for d in filter_detectors(detectors, ["name:*"])]
    assert labels == list(BUILTIN_LABELS) + ["custom:abc"]


def test_filter_unmatched_rule_is_not_an_error():
    detectors = builtin_detectors()
    assert filter_detectors(detectors, ["name:*", "nope", ""]) == detectors


def test_disable_rule_parse():
    assert DisableRule.parse("name:*") == DisableRule("name:", prefix=True)
    assert DisableRule.parse(" phone ") == DisableRule("phone")
    assert DisableRule.parse("  ") is None
    assert DisableRule("name:", prefix=True).matches("name:Ann")
    assert not DisableRule("name", prefix=False).matches("name:Ann")


# ── Luhn ─────────────────────────────────────────────────────────────

def test_luhn_known_values():
    assert luhn_valid("4111111111111111")
    assert not luhn_valid("4111111111111112")
    assert luhn_valid_token("4111 1111 1111 1111")
    assert luhn_valid_token("4012-8888-8888-1881")
    assert not luhn_valid_token("4111 1111 1111 1112")


def test_luhn_rejects_other_separators_and_letters():
    assert not luhn_valid_token("4111.1111.1111.1111")
    assert not luhn_valid_token("4111a111111111111")
    assert not luhn_valid_token("")


def _reference_luhn(digits: str) -> bool:
    doubled = (0, 2, 4, 6, 8, 1, 3, 5, 7, 9)
    total = 0
    for pos, ch in enumerate(reversed(digits)):
        total += doubled[int(ch)] if pos % 2 else int(ch)
    return total % 10 == 0


@given(st.text(alphabet="0123456789", min_size=13, max_size=19))
def test_luhn_matches_reference(digits):
    assert luhn_valid(digits) == _reference_luhn(digits)


@given(st.text(alphabet="0123456789", max_size=30).filter(lambda s: not 13 <= len(s) <= 19))
def test_luhn_rejects_out_of_range_lengths(digits):
    assert not luhn_valid(digits)


@given(st.text(alphabet="0123456789", min_size=12, max_size=18))
def test_luhn_check_digit_completes_number(body):
    check = next(d for d in "0123456789" if _reference_luhn(body + d))
    assert luhn_valid(body + check)


# ── Mask resolver ────────────────────────────────────────────────────

def test_apply_template():
    assert apply_template("[REDACTED:{label}:{n}]", "email", 3) == "[REDACTED:email:3]"
    assert apply_template("[REDACTED:{label}:{n}:{hash}]", "email", 3, "abc123") == "[REDACTED:email:3:abc123]"


def test_apply_template_is_repeatable():
    first = apply_template("[{label}:{n}]", "ssn", 7)
    assert first == apply_template("[{label}:{n}]", "ssn", 7) == "[ssn:7]"


def test_apply_template_repeats_and_unknowns():
    assert apply_template("{label}-{label}-{n}-{n}", "dob", 2) == "dob-dob-2-2"
    assert apply_template("{label} {other} {hash}", "dob", 2) == "dob {other} {hash}"


def test_apply_template_does_not_rescan_values():
    assert apply_template("{label}/{n}", r"custom:\d{n}", 2) == r"custom:\d{n}/2"


def test_hash_fragment_is_salted_sha256_prefix():
    expected = hashlib.sha256(b"salttest@example.com").hexdigest()
    assert hash_fragment("salt", "test@example.com") == expected[:8]
    assert hash_fragment("salt", "test@example.com", 64) == expected
    assert hash_fragment("other", "test@example.com") != expected[:8]


def test_literal_mask_ignores_match():
    cfg = build_mask_config(literal="***")
    assert cfg.render("email", "a@b.com", 1) == "***"
    assert cfg.render("ssn", "123-45-6789", 9) == "***"


def test_blank_template_means_literal():
    cfg = build_mask_config(template="   ")
    assert cfg.template is None
    assert cfg.render("email", "a@b.com", 1) == "[REDACTED]"


def test_hash_without_template_uses_default():
    cfg = build_mask_config(hash_enabled=True, salt="salt")
    assert cfg.template == DEFAULT_HASH_TEMPLATE
    assert "{hash}" in cfg.template


def test_hash_with_template_missing_placeholder_fails():
    with pytest.raises(ConfigurationError):
        build_mask_config(template="[REDACTED:{label}:{n}]", hash_enabled=True, salt="salt")


@pytest.mark.parametrize("length", [0, -1, 65])
def test_hash_length_bounds(length):
    with pytest.raises(ConfigurationError):
        build_mask_config(hash_enabled=True, hash_length=length)


def test_mask_config_checks_its_own_invariants():
    with pytest.raises(ConfigurationError):
        MaskConfig(hash_enabled=True)


# ── Redaction pass ───────────────────────────────────────────────────

def test_template_indices_count_per_detector_pass():
    text, counts = _redact("555-123-4567 a@x.com b@y.com", template="<{label}#{n}>")
    assert text == "<phone#1> <email#1> <email#2>"
    assert counts == {"email": 2, "phone": 1}


def test_shared_labels_are_summed():
    detectors = [Detector("tag", re.compile("foo")), Detector("tag", re.compile("bar"))]
    text, counts = redact_content("foo bar foo", detectors, build_mask_config(template="{label}{n}"))
    assert counts == {"tag": 3}
    # {n} restarts with each detector's pass
    assert text == "tag1 tag1 tag2"


def test_hash_is_deterministic_within_document():
    content = "Email me at test@example.com or test@example.com"
    text, counts = _redact(content, template="[REDACTED:{label}:{n}:{hash}]", hash_enabled=True, salt="salt")
    found = re.findall(r"\[REDACTED:email:(\d+):([0-9a-f]{8})\]", text)
    assert counts == {"email": 2}
    assert [n for n, _ in found] == ["1", "2"]
    assert found[0][1] == found[1][1] == hash_fragment("salt", "test@example.com")


def test_hash_is_deterministic_across_documents():
    r = Redactor(build_detectors(), build_mask_config(hash_enabled=True, salt="s"))
    first = r.redact("From alice@example.com")
    second = r.redact("Reply to alice@example.com please")
    token = "[REDACTED:email:" + hash_fragment("s", "alice@example.com") + "]"
    assert token in first.text
    assert token in second.text


def test_credit_card_gating():
    text, counts = _redact("valid 4111 1111 1111 1111 invalid 4111 1111 1111 1112")
    assert "4111 1111 1111 1111" not in text
    assert "4111 1111 1111 1112" in text
    assert counts == {"credit_card": 1}


def test_credit_card_candidate_allows_mixed_separators():
    text, counts = _redact("card 4111-1111 1111-1111 on file")
    assert text == "card [REDACTED] on file"
    assert counts == {"credit_card": 1}


def test_invalid_card_does_not_advance_index():
    text, _ = _redact(
        "4111 1111 1111 1112 then 4111 1111 1111 1111",
        template="[{label}:{n}]",
    )
    assert text == "4111 1111 1111 1112 then [credit_card:1]"


def test_spec_order_street_before_ip():
    text, counts = _redact("123 Main St, 192.168.1.1")
    assert text == "[REDACTED], [REDACTED]"
    assert counts == {"street_address": 1, "ip_address": 1}


def test_earlier_detector_hides_span_from_later_ones():
    mask = build_mask_config()
    text, counts = redact_content("10.0.0.1 Main St", _by_label("street_address", "ip_address"), mask)
    assert text == "10.0.0.[REDACTED]"
    assert counts == {"street_address": 1}

    text, counts = redact_content("10.0.0.1 Main St", _by_label("ip_address", "street_address"), mask)
    assert text == "[REDACTED] Main St"
    assert counts == {"ip_address": 1}


def test_redaction_is_idempotent_with_literal_mask():
    content = (
        "Reach jane.doe@example.com or 555-123-4567. SSN 123-45-6789, born 3/14/1990, "
        "lives at 42 Elm Street. See https://example.com/profile from 10.0.0.8, "
        "card 4111 1111 1111 1111."
    )
    r = Redactor(build_detectors())
    first = r.redact(content)
    assert first.counts == {
        "email": 1, "phone": 1, "ssn": 1, "dob": 1,
        "street_address": 1, "url": 1, "ip_address": 1, "credit_card": 1,
    }
    assert first.total == 8
    second = r.redact(first.text)
    assert second.total == 0
    assert second.text == first.text


def test_redactor_labels_and_default_mask():
    r = Redactor(build_detectors())
    assert r.labels == list(BUILTIN_LABELS)
    assert r.mask == MaskConfig()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
