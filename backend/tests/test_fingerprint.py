"""
Tests for MAC canonicalization, salted hashing and fingerprint matching.
"""

import hashlib
import string

import pytest

from lanpresence.scanner.fingerprint import (
    DeviceFingerprint,
    InvalidMacError,
    canonical_mac,
    generate_salt,
    hash_mac,
    match_fingerprints,
)

MAC = "aa:bb:cc:dd:ee:ff"


def fingerprint(user_id, mac, salt):
    return DeviceFingerprint(owner_user_id=user_id, salted_hash=hash_mac(mac, salt), salt=salt)


# ─── canonical_mac Tests ─────────────────────────────────────────────────────


class TestCanonicalMac:

    @pytest.mark.parametrize("raw", [
        "aa:bb:cc:dd:ee:ff",
        "AA:BB:CC:DD:EE:FF",
        "aa-bb-cc-dd-ee-ff",
        "aabb.ccdd.eeff",
        "AABBCCDDEEFF",
        "  aa:bb:cc:dd:ee:ff\n",
        bytes.fromhex("aabbccddeeff"),
    ])
    def test_forms_normalize_to_one_string(self, raw):
        assert canonical_mac(raw) == MAC

    def test_single_digit_octets_are_padded(self):
        assert canonical_mac("a:b:c:d:e:f") == "0a:0b:0c:0d:0e:0f"

    @pytest.mark.parametrize("raw", ["", "aa:bb:cc:dd:ee", "aa:bb:cc:dd:ee:gg", "aabb.ccdd.eeff.0011", "aab.bcc.ddeeff", b"\x00\x01"])
    def test_invalid_raises(self, raw):
        with pytest.raises(InvalidMacError):
            canonical_mac(raw)

    def test_invalid_mac_error_is_value_error(self):
        with pytest.raises(ValueError):
            canonical_mac("nope")


# ─── hash_mac Tests ──────────────────────────────────────────────────────────


class TestHashMac:

    def test_deterministic(self):
        assert hash_mac(MAC, "s1") == hash_mac(MAC, "s1")

    def test_output_is_lowercase_sha256_hex(self):
        digest = hash_mac(MAC, "s1")
        assert len(digest) == 64
        assert set(digest) <= set(string.hexdigits.lower())

    def test_single_round_hashes_salt_then_mac(self):
        expected = hashlib.sha256(b"s1aa:bb:cc:dd:ee:ff").hexdigest()
        assert hash_mac(MAC, "s1", iterations=1) == expected

    def test_rounds_feed_hex_digest_forward(self):
        digest = "s1" + MAC
        for _ in range(1000):
            digest = hashlib.sha256(digest.encode()).hexdigest()
        assert hash_mac(MAC, "s1") == digest

    def test_input_form_does_not_change_hash(self):
        assert hash_mac("AA-BB-CC-DD-EE-FF", "s1") == hash_mac(MAC, "s1")

    def test_changing_salt_changes_hash(self):
        assert hash_mac(MAC, "s1") != hash_mac(MAC, "s2")

    def test_changing_one_mac_character_changes_hash(self):
        assert hash_mac(MAC, "s1") != hash_mac("aa:bb:cc:dd:ee:fe", "s1")


class TestGenerateSalt:

    def test_default_length_and_alphabet(self):
        salt = generate_salt()
        assert len(salt) == 16
        assert set(salt) <= set(string.hexdigits.lower())

    def test_odd_length(self):
        assert len(generate_salt(7)) == 7

    def test_salts_differ(self):
        assert generate_salt() != generate_salt()


# ─── match_fingerprints Tests ────────────────────────────────────────────────


class TestMatchFingerprints:

    def test_matching_address_marks_owner(self):
        fps = [fingerprint(1, MAC, "s1"), fingerprint(2, "11:22:33:44:55:66", "s2")]
        assert match_fingerprints([MAC], fps) == {1}

    def test_no_addresses_no_owners(self):
        assert match_fingerprints([], [fingerprint(1, MAC, "s1")]) == set()

    def test_no_fingerprints_no_owners(self):
        assert match_fingerprints([MAC], []) == set()

    def test_unregistered_address_matches_nothing(self):
        assert match_fingerprints(["00:00:00:00:00:01"], [fingerprint(1, MAC, "s1")]) == set()

    def test_several_users(self):
        fps = [
            fingerprint(1, MAC, "a"),
            fingerprint(2, "11:22:33:44:55:66", "b"),
            fingerprint(3, "77:88:99:aa:bb:cc", "c"),
        ]
        found = ["77:88:99:aa:bb:cc", MAC, "de:ad:be:ef:00:00"]
        assert match_fingerprints(found, fps) == {1, 3}

    def test_one_address_claims_only_one_fingerprint(self):
        # Same device registered twice with different salts
        fps = [fingerprint(1, MAC, "a"), fingerprint(2, MAC, "b")]
        assert match_fingerprints([MAC], fps) == {1}

    def test_duplicate_address_never_rematches_fingerprint(self, monkeypatch):
        from lanpresence.scanner import fingerprint as module

        fp = fingerprint(1, MAC, "s1")
        calls = []
        real_hash = module.hash_mac

        def counting_hash(mac, salt, iterations):
            calls.append(mac)
            return real_hash(mac, salt, iterations)

        monkeypatch.setattr(module, "hash_mac", counting_hash)
        assert module.match_fingerprints([MAC, MAC, MAC], [fp]) == {1}
        # Once matched the fingerprint is gone, later duplicates hash nothing
        assert len(calls) == 1

    def test_duplicate_address_with_two_registrations(self):
        fps = [fingerprint(1, MAC, "a"), fingerprint(2, MAC, "b")]
        assert match_fingerprints([MAC, MAC], fps) == {1, 2}

    def test_input_list_is_not_mutated(self):
        fps = [fingerprint(1, MAC, "s1")]
        match_fingerprints([MAC], fps)
        assert len(fps) == 1

    def test_user_with_two_devices_counted_once(self):
        fps = [fingerprint(7, MAC, "a"), fingerprint(7, "11:22:33:44:55:66", "b")]
        assert match_fingerprints([MAC, "11:22:33:44:55:66"], fps) == {7}
