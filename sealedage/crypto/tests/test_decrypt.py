"""Tests for age decryption over a key pool."""

import logging

import pytest

from sealedage.crypto.decrypt import decrypt
from sealedage.crypto.identity import (
    IdentityParseError,
    KeyCandidate,
    MissingPrivateKey,
    parse_identities,
)
from sealedage.errors import NoKeySucceeded


def candidate(name, identity, key_file):
    return KeyCandidate(name=name, data={"private": key_file(identity)})


class TestDecrypt:
    def test_single_key(self, make_identity, seal, key_file):
        ident = make_identity()
        plain, used = decrypt(seal("s3cr3t", ident), [candidate("k1", ident, key_file)])
        assert plain == b"s3cr3t"
        assert used == "k1"

    @pytest.mark.parametrize("position", [0, 1, 2, 3])
    def test_correct_key_anywhere_in_pool(self, make_identity, seal, key_file, position):
        right = make_identity()
        pool = [candidate(f"wrong-{i}", make_identity(), key_file) for i in range(3)]
        pool.insert(position, candidate("right", right, key_file))
        plain, used = decrypt(seal("hunter2", right), pool)
        assert plain == b"hunter2"
        assert used == "right"

    def test_first_success_wins(self, make_identity, seal, key_file):
        a, b = make_identity(), make_identity()
        ciphertext = seal("shared", a, b)
        pool = [candidate("b", b, key_file), candidate("a", a, key_file)]
        assert decrypt(ciphertext, pool) == (b"shared", "b")

    def test_no_working_key(self, make_identity, seal, key_file):
        ciphertext = seal("nope", make_identity())
        pool = [candidate("wrong", make_identity(), key_file)]
        with pytest.raises(NoKeySucceeded):
            decrypt(ciphertext, pool)

    def test_empty_pool(self, make_identity, seal):
        with pytest.raises(NoKeySucceeded):
            decrypt(seal("x", make_identity()), [])

    def test_skips_candidate_without_private_field(self, make_identity, seal, key_file):
        ident = make_identity()
        pool = [
            KeyCandidate(name="no-private", data={"public": b"age1..."}),
            candidate("good", ident, key_file),
        ]
        assert decrypt(seal("v", ident), pool) == (b"v", "good")

    def test_skips_unparseable_key(self, make_identity, seal, key_file):
        ident = make_identity()
        pool = [
            KeyCandidate(name="garbage", data={"private": b"AGE-SECRET-KEY-1NOTAKEY"}),
            KeyCandidate(name="binary", data={"private": b"\xff\xfe"}),
            candidate("good", ident, key_file),
        ]
        assert decrypt(seal("v", ident), pool) == (b"v", "good")

    def test_accepts_bare_key_with_whitespace(self, make_identity, seal):
        ident = make_identity()
        pool = [KeyCandidate(name="bare", data={"private": f"  {ident}\n\n".encode()})]
        assert decrypt(seal("v", ident), pool) == (b"v", "bare")

    def test_binary_plaintext(self, make_identity, seal, key_file):
        ident = make_identity()
        payload = bytes(range(256)) * 3
        plain, _ = decrypt(seal(payload, ident), [candidate("k", ident, key_file)])
        assert plain == payload

    def test_empty_plaintext(self, make_identity, seal, key_file):
        ident = make_identity()
        assert decrypt(seal(b"", ident), [candidate("k", ident, key_file)]) == (b"", "k")

    def test_failures_logged_at_debug(self, make_identity, seal, key_file, caplog):
        ciphertext = seal("x", make_identity())
        with caplog.at_level(logging.DEBUG, logger="sealedage.crypto.decrypt"):
            with pytest.raises(NoKeySucceeded):
                decrypt(ciphertext, [candidate("wrong", make_identity(), key_file)])
        assert any("wrong" in r.getMessage() for r in caplog.records)
        assert all(r.levelno == logging.DEBUG for r in caplog.records)


class TestFraming:
    def test_armored(self, make_identity, seal, key_file):
        ident = make_identity()
        assert decrypt(seal("a", ident, framing="armored"), [candidate("k", ident, key_file)])[0] == b"a"

    def test_armored_with_leading_whitespace(self, make_identity, seal, key_file):
        ident = make_identity()
        ciphertext = "\n \t" + seal("a", ident, framing="armored")
        assert decrypt(ciphertext, [candidate("k", ident, key_file)])[0] == b"a"

    def test_raw_binary(self, make_identity, seal, key_file):
        ident = make_identity()
        assert decrypt(seal("b", ident, framing="binary"), [candidate("k", ident, key_file)])[0] == b"b"

    def test_base64_envelope(self, make_identity, seal, key_file):
        ident = make_identity()
        assert decrypt(seal("c", ident, framing="base64"), [candidate("k", ident, key_file)])[0] == b"c"

    def test_malformed_armor_is_decryption_failure(self, make_identity, key_file):
        ident = make_identity()
        broken = "-----BEGIN AGE ENCRYPTED FILE-----\n!!!not base64!!!\n-----END AGE ENCRYPTED FILE-----\n"
        with pytest.raises(NoKeySucceeded):
            decrypt(broken, [candidate("k", ident, key_file)])

    def test_non_ascii_ciphertext_is_decryption_failure(self, make_identity, key_file):
        ident = make_identity()
        with pytest.raises(NoKeySucceeded):
            decrypt("pässwörd", [candidate("k", ident, key_file)])

    def test_non_ascii_armor_is_decryption_failure(self, make_identity, key_file):
        ident = make_identity()
        broken = "-----BEGIN AGE ENCRYPTED FILE-----\nYWdlLWVuY3J5cHRpb24=ü\n-----END AGE ENCRYPTED FILE-----\n"
        with pytest.raises(NoKeySucceeded):
            decrypt(broken, [candidate("k", ident, key_file)])

    def test_truncated_armor_is_decryption_failure(self, make_identity, seal, key_file):
        ident = make_identity()
        armored = seal("truncated", ident)
        cut = "\n".join(armored.splitlines()[:-2])
        with pytest.raises(NoKeySucceeded):
            decrypt(cut, [candidate("k", ident, key_file)])

    def test_plain_text_is_decryption_failure(self, make_identity, key_file):
        with pytest.raises(NoKeySucceeded):
            decrypt("not a ciphertext", [candidate("k", make_identity(), key_file)])


class TestIdentities:
    def test_key_file_with_comments(self, make_identity, key_file):
        ident = make_identity()
        parsed = parse_identities(key_file(ident).decode())
        assert [str(p) for p in parsed] == [str(ident)]

    def test_multiple_identities(self, make_identity):
        a, b = make_identity(), make_identity()
        parsed = parse_identities(f"{a}\n# second\n{b}\n")
        assert [str(p) for p in parsed] == [str(a), str(b)]

    def test_only_comments(self):
        with pytest.raises(IdentityParseError, match="no identities"):
            parse_identities("# nothing here\n\n")

    def test_invalid_line(self):
        with pytest.raises(IdentityParseError):
            parse_identities("AGE-SECRET-KEY-1BOGUS\n")

    def test_missing_private_field(self):
        with pytest.raises(MissingPrivateKey):
            KeyCandidate(name="k", data={}).identities()

    def test_multi_identity_secret_decrypts(self, make_identity, seal):
        a, b = make_identity(), make_identity()
        pool = [KeyCandidate(name="both", data={"private": f"{a}\n{b}\n".encode()})]
        assert decrypt(seal("v", b), pool) == (b"v", "both")
