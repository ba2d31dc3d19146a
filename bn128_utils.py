import hashlib
import logging
import secrets

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    G1,
    G2,
    Z1,
    Z2,
    b,
    b2,
    curve_order,
    is_inf,
    is_on_curve,
    multiply,
    normalize,
)

from threshold_errors import ZeroInversionError

logger = logging.getLogger(__name__)

# --- 1. Curve Definition (BN254 / alt_bn128) ---

P = FQ.field_modulus  # Base field modulus
N = curve_order  # Order of G1, G2 and GT, the modulus of the scalar field Fr
COORD_SIZE = 32  # Bytes per base field coordinate

G1_GENERATOR = G1
G2_GENERATOR = G2
G1_ZERO = Z1
G2_ZERO = Z2


# --- 2. Scalar Field Mathematics ---

def modular_inverse(a, m):
    """Compute the modular inverse of a modulo m."""
    if a % m == 0:
        raise ZeroInversionError(context=f"modulus {m}")
    return pow(a, -1, m)


class FiniteFieldElement:

    def __init__(self, value, prime=N):
        if isinstance(value, FiniteFieldElement):
            value = value.value
        self.value = value % prime
        self.prime = prime

    def __add__(self, other):
        if isinstance(other, FiniteFieldElement):
            return FiniteFieldElement(self.value + other.value, self.prime)
        return FiniteFieldElement(self.value + other, self.prime)

    def __radd__(self, other):
        return self.__add__(other)

    def __sub__(self, other):
        if isinstance(other, FiniteFieldElement):
            return FiniteFieldElement(self.value - other.value, self.prime)
        return FiniteFieldElement(self.value - other, self.prime)

    def __rsub__(self, other):
        return FiniteFieldElement(other - self.value, self.prime)

    def __neg__(self):
        return FiniteFieldElement(-self.value, self.prime)

    def __mul__(self, other):
        if isinstance(other, FiniteFieldElement):
            return FiniteFieldElement(self.value * other.value, self.prime)
        else:
            # other is a plain integer
            return FiniteFieldElement(self.value * other, self.prime)

    def __rmul__(self, other):
        return self.__mul__(other)

    def __truediv__(self, other):
        if not isinstance(other, FiniteFieldElement):
            other = FiniteFieldElement(other, self.prime)
        return self * other.inverse()

    def inverse(self):
        """Multiplicative inverse, undefined for zero."""
        return FiniteFieldElement(modular_inverse(self.value, self.prime), self.prime)

    def is_zero(self):
        return self.value == 0

    def __int__(self):
        return self.value

    def __repr__(self):
        return f"FiniteFieldElement({self.value} mod {self.prime})"

    def __eq__(self, other):
        if isinstance(other, FiniteFieldElement):
            return self.value == other.value and self.prime == other.prime
        elif isinstance(other, int):
            # Allow comparison with integers
            return self.value == other % self.prime
        return False

    def __ne__(self, value):
        return not self.__eq__(value)

    def __hash__(self):
        return hash((self.value, self.prime))


def random_scalar():
    """Sample a uniformly random nonzero element of Fr from the OS CSPRNG."""
    r = secrets.randbelow(N)
    while r == 0:
        r = secrets.randbelow(N)
    return FiniteFieldElement(r, N)


# --- 3. Hash functions ---

def sha256_digest(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha3_256_digest(data: bytes) -> bytes:
    return hashlib.sha3_256(data).digest()


def blake2s_digest(data: bytes) -> bytes:
    return hashlib.blake2s(data).digest()


# --- 4. Group element encodings ---

def _coord_int(coord):
    # py_ecc stores FQ as an object with .n and FQ2 coefficients as ints
    return int(getattr(coord, "n", coord))


def g2_to_strings(point) -> list[str]:
    """
    Affine coordinates of a G2 element as decimal strings, ordered
    X.c0, X.c1, Y.c0, Y.c1 (c0 is the real coefficient of the FQ2 value).

    Every participant hashes this encoding, so it has to stay byte-exact.
    The identity encodes as ["0", "0", "1", "0"].
    """
    if is_inf(point):
        return ["0", "0", "1", "0"]
    x, y = normalize(point)
    return [str(_coord_int(c)) for c in (*x.coeffs, *y.coeffs)]


def g2_digest(point, hash_func=sha256_digest) -> bytes:
    """Hash of the concatenated coordinate strings of a G2 element."""
    return hash_func("".join(g2_to_strings(point)).encode("ascii"))


def hash_to_fq(hash_bytes: bytes) -> int:
    """Read 32 bytes as a big-endian integer reduced into the base field."""
    if len(hash_bytes) != COORD_SIZE:
        raise ValueError(f"Expected {COORD_SIZE} bytes, got {len(hash_bytes)}")
    return int.from_bytes(hash_bytes, "big") % P


def hash_to_g1(hash_bytes: bytes):
    """
    Try-and-increment map of a 32-byte string onto G1.

    Starts at x = hash_to_fq(hash_bytes) and increments x until x^3 + 3 is a
    square. Since P = 3 mod 4 the root is (x^3 + 3)^((P + 1) / 4). G1 has
    cofactor 1, so every curve point is in the group.
    """
    x = hash_to_fq(hash_bytes)
    while True:
        y_sqr = (pow(x, 3, P) + _coord_int(b)) % P
        euler = pow(y_sqr, (P - 1) // 2, P)
        if euler in (0, 1):
            y = pow(y_sqr, (P + 1) // 4, P)
            return (FQ(x), FQ(y), FQ.one())
        x = (x + 1) % P


def hash_to_group(U, V: bytes, hash_func=sha256_digest):
    """
    Map a ciphertext's (U, V) pair onto G1.

    The digest of U's coordinate strings followed by V is hex encoded and
    hashed again with SHA-256; the first 32 characters of that hex digest
    seed hash_to_g1.
    """
    u_str = g2_to_strings(U)
    digest = hash_func("".join(u_str).encode("ascii") + V)
    seed_hex = hashlib.sha256(digest.hex().encode("ascii")).hexdigest()
    return hash_to_g1(seed_hex[:COORD_SIZE].encode("ascii"))


def xor_bytes(lhs: bytes, rhs: bytes) -> bytes:
    return bytes(a ^ c for a, c in zip(lhs, rhs))


# --- 5. Transport encodings ---

def _words_to_hex(values) -> str:
    byte_data = b"\x04" + b"".join(v.to_bytes(COORD_SIZE, "big") for v in values)
    return byte_data.hex()


def _hex_to_words(hex_string, count):
    bytes_object = bytes.fromhex(hex_string)
    if bytes_object == b"\x00":
        return None  # Point at infinity
    if bytes_object[0] != 0x04:
        raise ValueError("Only uncompressed format supported")
    if len(bytes_object) != 1 + count * COORD_SIZE:
        raise ValueError(
            f"Expected {1 + count * COORD_SIZE} bytes, got {len(bytes_object)}"
        )
    words = [
        int.from_bytes(bytes_object[1 + i * COORD_SIZE:1 + (i + 1) * COORD_SIZE], "big")
        for i in range(count)
    ]
    if any(w >= P for w in words):
        raise ValueError("Coordinate is not reduced modulo the field prime")
    return words


def g1_to_hex(point) -> str:
    """Serialize a G1 point to hex (uncompressed format)."""
    if is_inf(point):
        return "00"
    x, y = normalize(point)
    return _words_to_hex([_coord_int(x), _coord_int(y)])


def g1_from_hex(hex_string: str):
    """Deserialize hex to a G1 point, rejecting points off the curve."""
    words = _hex_to_words(hex_string, 2)
    if words is None:
        return G1_ZERO
    point = (FQ(words[0]), FQ(words[1]), FQ.one())
    if not is_on_curve(point, b):
        raise ValueError("Point is not on the curve")
    return point


def g2_to_hex(point) -> str:
    """Serialize a G2 point to hex (uncompressed format, X.c0 X.c1 Y.c0 Y.c1)."""
    if is_inf(point):
        return "00"
    x, y = normalize(point)
    return _words_to_hex([_coord_int(c) for c in (*x.coeffs, *y.coeffs)])


def g2_from_hex(hex_string: str):
    """Deserialize hex to a G2 point, rejecting points outside the r-torsion subgroup."""
    words = _hex_to_words(hex_string, 4)
    if words is None:
        return G2_ZERO
    point = (FQ2([words[0], words[1]]), FQ2([words[2], words[3]]), FQ2.one())
    if not is_on_curve(point, b2):
        raise ValueError("Point is not on the curve")
    if not is_inf(multiply(point, N)):
        raise ValueError("Point is not in the G2 subgroup")
    return point
