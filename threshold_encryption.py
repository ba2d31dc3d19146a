"""
Threshold public-key encryption over the BN254 pairing groups.

A message is encrypted once under a combined public key. Each of the n key
share holders can turn the ciphertext into a decryption share, anyone can
check a share against the holder's public key share, and any t shares are
combined by Lagrange interpolation at zero to recover the plaintext.

    te = ThresholdEncryption(t=3, n=5)
    ciphertext = te.encrypt(message, common_public)
    share = te.get_decryption_share(ciphertext, secret_key_share)
    plaintext = te.combine_shares(ciphertext, [(share_1, 1), (share_3, 3), (share_5, 5)])

Messages must be exactly as long as the configured digest (32 bytes for
SHA-256).
"""

import logging
from typing import NamedTuple

from py_ecc.optimized_bn128 import add, is_inf, multiply, pairing
from pydantic import BaseModel, ConfigDict, Field

import bn128_utils
from bn128_utils import (
    G2_GENERATOR,
    G2_ZERO,
    FiniteFieldElement,
    g1_from_hex,
    g1_to_hex,
    g2_digest,
    g2_from_hex,
    g2_to_hex,
    hash_to_group,
    sha256_digest,
    xor_bytes,
)
from threshold_errors import (
    DuplicateIndexError,
    InsufficientSharesError,
    InvalidKeyError,
    MalformedCiphertextError,
    MessageLengthError,
)

logger = logging.getLogger(__name__)


class CiphertextSchema(BaseModel):
    U: str
    V: str
    W: str

    model_config = ConfigDict(frozen=True)


class DecryptionShareSchema(BaseModel):
    value: str
    index: int = Field(ge=1)

    model_config = ConfigDict(frozen=True)


class Ciphertext(NamedTuple):
    """
    U = r * G2, V = mask XOR message, W = r * hash_to_group(U, V).
    """

    U: tuple
    V: bytes
    W: tuple

    def serialize(self) -> str:
        schema = CiphertextSchema(U=g2_to_hex(self.U), V=self.V.hex(), W=g1_to_hex(self.W))
        return schema.model_dump_json()

    @classmethod
    def deserialize(cls, data: str) -> "Ciphertext":
        schema = CiphertextSchema.model_validate_json(data)
        return cls(g2_from_hex(schema.U), bytes.fromhex(schema.V), g1_from_hex(schema.W))


class DecryptionShare(NamedTuple):
    value: tuple
    index: int

    def serialize(self) -> str:
        schema = DecryptionShareSchema(value=g2_to_hex(self.value), index=self.index)
        return schema.model_dump_json()

    @classmethod
    def deserialize(cls, data: str) -> "DecryptionShare":
        schema = DecryptionShareSchema.model_validate_json(data)
        return cls(g2_from_hex(schema.value), schema.index)


class ThresholdEncryption:
    def __init__(self, t: int, n: int, hash_func=sha256_digest):
        if n < 1:
            raise ValueError(f"Number of participants {n} must be at least 1")
        if t < 1 or t > n:
            raise ValueError(f"Threshold {t} must be between 1 and {n}")

        self.t = t
        self.n = n
        self.hash_func = hash_func

        logger.info(
            "Initialized ThresholdEncryption with %s-of-%s threshold, hash %s",
            t,
            n,
            getattr(hash_func, "__name__", repr(hash_func)),
        )

    @classmethod
    def from_config(cls, config) -> "ThresholdEncryption":
        """Build an engine from a loaded ThresholdConfigSchema."""
        from threshold_config import get_hash_function

        return cls(config.t, config.n, get_hash_function(config.hash_function))

    def hash(self, Y) -> bytes:
        return g2_digest(Y, self.hash_func)

    def hash_to_group(self, U, V: bytes):
        return hash_to_group(U, V, self.hash_func)

    def encrypt(self, message: bytes, common_public, r=None) -> Ciphertext:
        """
        Encrypt a message under the combined public key.

        ``r`` pins the encryption scalar for reproducible vectors and must
        never be reused in production; by default a fresh one is sampled.
        """
        message = bytes(message)

        if r is None:
            r = bn128_utils.random_scalar()
        else:
            r = FiniteFieldElement(r)
            if r.is_zero():
                raise InvalidKeyError("zero encryption scalar")

        U = multiply(G2_GENERATOR, r.value)
        Y = multiply(common_public, r.value)

        mask = self.hash(Y)
        if len(mask) != len(message):
            raise MessageLengthError(
                context=f"message has {len(message)} bytes, digest has {len(mask)}"
            )

        V = xor_bytes(mask, message)

        H = self.hash_to_group(U, V)
        W = multiply(H, r.value)

        logger.debug("Encrypted %s byte message", len(message))
        return Ciphertext(U, V, W)

    def _check_ciphertext(self, ciphertext):
        U, V, W = ciphertext
        H = self.hash_to_group(U, V)

        # r is never zero, so an identity U or W cannot come from encrypt
        if is_inf(U) or is_inf(W):
            return False, H

        fst = pairing(G2_GENERATOR, W)
        snd = pairing(U, H)

        return fst == snd, H

    def check_ciphertext(self, ciphertext) -> bool:
        """Check e(W, G2) == e(H(U, V), U), i.e. that U and W share the same r."""
        is_valid, _ = self._check_ciphertext(ciphertext)
        return is_valid

    def get_decryption_share(self, ciphertext, secret_key):
        """Return secret_key * U after checking the key and the ciphertext."""
        secret_key = FiniteFieldElement(secret_key)
        if secret_key.is_zero():
            logger.error("Refusing to issue a decryption share with a zero secret key")
            raise InvalidKeyError()

        if not self.check_ciphertext(ciphertext):
            logger.error("Ciphertext failed the pairing check, no share issued")
            raise MalformedCiphertextError("cannot decrypt data")

        U = ciphertext[0]
        return multiply(U, secret_key.value)

    def verify(self, ciphertext, decryption_share, public_key) -> bool:
        """
        Check a decryption share against its holder's public key share.

        Returns False for a malformed ciphertext or a zero share. Otherwise
        returns True exactly when e(W, public_key) != e(H, decryption_share).
        This polarity is a fixed part of the protocol: a share whose pairings
        match is reported as False.
        """
        is_valid, H = self._check_ciphertext(ciphertext)
        if not is_valid:
            logger.debug("Share verification skipped, ciphertext is malformed")
            return False

        if is_inf(decryption_share):
            return False

        W = ciphertext[2]
        pp1 = pairing(public_key, W)
        pp2 = pairing(decryption_share, H)

        return pp1 != pp2

    def combine_shares(self, ciphertext, decryption_shares) -> bytes:
        """
        Recover the plaintext from the first t (share, index) pairs.

        Shares are not verified here; combining bad shares gives a wrong
        plaintext, not an error.
        """
        if not self.check_ciphertext(ciphertext):
            logger.error("Ciphertext failed the pairing check, cannot combine shares")
            raise MalformedCiphertextError("error during share combining")

        selected = list(decryption_shares)[: self.t]
        lagrange_coeffs = self.lagrange_coeffs([index for _, index in selected])

        total = G2_ZERO
        for coeff, (share, _) in zip(lagrange_coeffs, selected):
            total = add(total, multiply(share, coeff.value))

        V = ciphertext[1]
        mask = self.hash(total)
        if len(mask) != len(V):
            raise MessageLengthError(
                context=f"ciphertext has {len(V)} bytes, digest has {len(mask)}"
            )

        logger.debug("Combined %s decryption shares", len(selected))
        return xor_bytes(mask, V)

    def lagrange_coeffs(self, indices) -> list[FiniteFieldElement]:
        """
        Lagrange basis polynomials at x = 0 for the first t indices.

        coeff_i = (prod_j idx_j) / (idx_i * prod_{j != i} (idx_j - idx_i))
        """
        if len(indices) < self.t:
            logger.error("Got %s indices for a threshold of %s", len(indices), self.t)
            raise InsufficientSharesError(context=f"got {len(indices)}, need {self.t}")

        idx = [FiniteFieldElement(int(i)) for i in indices[: self.t]]

        w = FiniteFieldElement(1)
        for x in idx:
            w *= x

        res = []
        for i in range(self.t):
            v = idx[i]
            for j in range(self.t):
                if j != i:
                    if idx[i] == idx[j]:
                        raise DuplicateIndexError(context=f"index {idx[i].value}")
                    v *= idx[j] - idx[i]
            res.append(w * v.inverse())

        return res
