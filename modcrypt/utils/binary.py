"""modcrypt.utils.binary - base64 variants used by modular crypt hashes

this module provides the "hash64" codec shared by most of the crypt
family (``./0-9A-Za-z``, little-endian bit packing, no padding),
its big-endian sibling used by the des-crypt family,
the bcrypt ordering of the same alphabet,
and the "adapted base64" codec used by the pbkdf2 hashes.
"""
#=================================================================================
#imports
#=================================================================================
#core
from base64 import b64encode, b64decode
import binascii
import logging; log = logging.getLogger(__name__)
#site
#pkg
#local
__all__ = [
    # charmaps
    "BASE64_CHARS", "HASH64_CHARS", "BCRYPT_CHARS", "AB64_CHARS",

    # engines
    "Base64Engine",
    "h64", "h64big", "bcrypt64",

    # adapted base64
    "ab64_encode", "ab64_decode",
]

#=================================================================================
# base64-variant encoding
#=================================================================================

class Base64Engine(object):
    """codec for the unpadded base64 variants used by crypt hashes.

    every group of 3 bytes (24 bits) maps to 4 characters, each character
    carrying 6 bits. a short final group of 1 or 2 bytes maps to 2 or 3
    characters, the leftover bits of the last character being zero.

    :arg charmap:
        64 character string; the position of each character
        is the 6 bit value it represents.

    :param big:
        if true, bits are consumed most-significant first
        (des-crypt & bcrypt ordering); otherwise least-significant
        first (md5-crypt & sha-crypt ordering).

    the integer helpers (``encode_int6`` .. ``encode_int64``, and the
    matching ``decode_intXX`` methods) encode a fixed-width integer
    using the same bit order; widths not divisible by 6 are padded
    with zero bits at the end of the stream.

    encoders return :class:`str`; decoders accept :class:`str`
    or ascii :class:`bytes`, and raise :exc:`ValueError` for
    malformed input.
    """
    charmap = None
    big = False

    def __init__(self, charmap, big=False):
        if isinstance(charmap, bytes):
            charmap = charmap.decode("latin-1")
        elif not isinstance(charmap, str):
            raise TypeError("charmap must be unicode/bytes string")
        if len(charmap) != 64:
            raise ValueError("charmap must be 64 characters in length")
        if len(set(charmap)) != 64:
            raise ValueError("charmap must not contain duplicate characters")
        self.charmap = charmap
        self.big = big
        self._order = "big" if big else "little"
        self._values = dict((char, idx) for idx, char in enumerate(charmap))

    def __repr__(self):
        return "<Base64Engine %r big=%r>" % (self.charmap[:8] + "...", self.big)

    @staticmethod
    def _norm_source(source):
        if isinstance(source, bytes):
            try:
                return source.decode("ascii")
            except UnicodeDecodeError:
                raise ValueError("encoded string must be ascii")
        if not isinstance(source, str):
            raise TypeError("source must be str, not %s" % (type(source),))
        return source

    #=============================================================
    # integer <-> chars
    #=============================================================
    def _encode_int(self, value, bits):
        "render *bits*-wide integer as ``ceil(bits/6)`` chars"
        if value < 0 or value >> bits:
            raise ValueError("value out of range")
        pad = -bits % 6
        bits += pad
        if self.big:
            value <<= pad
            shifts = range(bits-6, -6, -6)
        else:
            shifts = range(0, bits, 6)
        charmap = self.charmap
        return "".join(charmap[(value >> shift) & 0x3f] for shift in shifts)

    def _decode_int(self, source, bits):
        "parse ``ceil(bits/6)`` chars into *bits*-wide integer, dropping pad bits"
        pad = -bits % 6
        size = (bits + pad) // 6
        if len(source) != size:
            raise ValueError("source must be exactly %d chars" % (size,))
        values = self._values
        chars = source if self.big else reversed(source)
        value = 0
        for char in chars:
            try:
                value = (value << 6) | values[char]
            except KeyError:
                raise ValueError("invalid character: %r" % (char,))
        if self.big:
            return value >> pad
        return value & ((1 << bits) - 1)

    def encode_int6(self, value):
        return self._encode_int(value, 6)

    def decode_int6(self, source):
        return self._decode_int(self._norm_source(source), 6)

    def encode_int12(self, value):
        return self._encode_int(value, 12)

    def decode_int12(self, source):
        return self._decode_int(self._norm_source(source), 12)

    def encode_int24(self, value):
        return self._encode_int(value, 24)

    def decode_int24(self, source):
        return self._decode_int(self._norm_source(source), 24)

    def encode_int64(self, value):
        "encode 64-bit integer as 11 chars, as used for des-crypt checksums"
        return self._encode_int(value, 64)

    def decode_int64(self, source):
        "decode 11 chars to 64-bit integer, as used for des-crypt checksums"
        return self._decode_int(self._norm_source(source), 64)

    #=============================================================
    # bytes <-> chars
    #=============================================================
    def encode_bytes(self, source):
        """encode bytes; output is always ``ceil(len(source)*4/3)`` chars.

        :raises TypeError: if source isn't bytes.
        """
        if not isinstance(source, bytes):
            raise TypeError("source must be bytes, not %s" % (type(source),))
        order = self._order
        return "".join(
            self._encode_int(int.from_bytes(source[idx:idx+3], order),
                             8 * len(source[idx:idx+3]))
            for idx in range(0, len(source), 3)
        )

    def decode_bytes(self, source):
        """decode chars to bytes, ignoring the unused bits of the last char.

        :raises ValueError:
            if source contains invalid characters,
            or its length is ``1 mod 4`` (which no byte string encodes to).
        """
        source = self._norm_source(source)
        if len(source) % 4 == 1:
            raise ValueError("input string length cannot be == 1 mod 4")
        order = self._order
        out = []
        for idx in range(0, len(source), 4):
            group = source[idx:idx+4]
            size = len(group) - 1
            value = self._decode_int(group, 8 * size)
            out.append(value.to_bytes(size, order))
        return b"".join(out)

    def encode_transposed_bytes(self, source, offsets):
        "encode ``bytes(source[i] for i in offsets)``"
        if not isinstance(source, bytes):
            raise TypeError("source must be bytes, not %s" % (type(source),))
        return self.encode_bytes(bytes(source[off] for off in offsets))

    def decode_transposed_bytes(self, source, offsets):
        """inverse of :meth:`encode_transposed_bytes`.

        raises :exc:`TypeError` if *offsets* doesn't cover every position,
        since the original bytes can't be recovered.
        """
        buf = [None] * len(offsets)
        for off, value in zip(offsets, self.decode_bytes(source)):
            buf[off] = value
        return bytes(buf)

# common charmaps
BASE64_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
AB64_CHARS =   "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789./"
HASH64_CHARS = "./0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
BCRYPT_CHARS = "./ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"

# common variants
h64 = Base64Engine(HASH64_CHARS)
h64big = Base64Engine(HASH64_CHARS, big=True)
bcrypt64 = Base64Engine(BCRYPT_CHARS, big=True)

#=============================================================================
# adapted-base64 encoding
#=============================================================================
_A64_ALTCHARS = b"./"
_A64_STRIP = b"=\n"
_A64_PAD1 = b"="
_A64_PAD2 = b"=="

def ab64_encode(data):
    """encode using variant of base64

    the output of this function is identical to b64_encode,
    except that it uses ``.`` instead of ``+``,
    and omits trailing padding ``=`` and whitespace.

    it is primarily used by modcrypt's pbkdf2 hashes.
    """
    return b64encode(data, _A64_ALTCHARS).strip(_A64_STRIP).decode("ascii")

def ab64_decode(data):
    """decode using variant of base64

    the input of this function is identical to b64_decode,
    except that it uses ``.`` instead of ``+``,
    and should not include trailing padding ``=`` or whitespace.

    :raises ValueError: if data is not valid adapted base64.
    """
    if isinstance(data, str):
        try:
            data = data.encode("ascii")
        except UnicodeEncodeError:
            raise ValueError("invalid base64 input")
    off = len(data) & 3
    if off == 0:
        pass
    elif off == 2:
        data += _A64_PAD2
    elif off == 3:
        data += _A64_PAD1
    else: # off == 1
        raise ValueError("invalid base64 input")
    try:
        return b64decode(data, _A64_ALTCHARS, validate=True)
    except binascii.Error as err:
        raise ValueError("invalid base64 input: %s" % (err,))

#=================================================================================
#eof
#=================================================================================
