"""modcrypt.handlers.md5_crypt - md5-crypt algorithm"""
#=========================================================
#imports
#=========================================================
#core
from hashlib import md5
import logging; log = logging.getLogger(__name__)
#site
#libs
from modcrypt.utils import classproperty, h64, safe_crypt, test_crypt
import modcrypt.utils.handlers as uh
#pkg
#local
__all__ = [
    "md5_crypt",
]

#=========================================================
#pure-python backend
#=========================================================
_MAGIC = b"$1$"

#: number of md5 rounds applied to the initial digest
_ROUNDS = 1000

#: order in which the 16 digest bytes are packed into the checksum,
#: three bytes per group, with the leftover byte encoded on its own.
_CHECKSUM_ORDER = (
    0, 6, 12,
    1, 7, 13,
    2, 8, 14,
    3, 9, 15,
    4, 10, 5,
    11,
)

def _repeat_to(source, size):
    "repeat bytes *source* until it's *size* bytes long"
    count, extra = divmod(size, len(source))
    return source * count + source[:extra]

def raw_md5_crypt(password, salt):
    """run md5-crypt over password & salt.

    :arg password: password as bytes
    :arg salt: salt as unicode, no more than 8 chars
    :returns: 22 char hash64 checksum, as unicode
    """
    salt = salt.encode("ascii")
    assert len(salt) <= 8, "salt too large"
    size = len(password)

    alt = md5(password + salt + password).digest()

    ctx = md5(password + _MAGIC + salt)
    if size:
        ctx.update(_repeat_to(alt, size))
    # one byte per bit of the password length: NUL for set bits,
    # the first password byte for clear bits.
    bits = size
    while bits:
        ctx.update(b"\x00" if bits & 1 else password[:1])
        bits >>= 1
    digest = ctx.digest()

    for i in range(_ROUNDS):
        ctx = md5(password if i & 1 else digest)
        if i % 3:
            ctx.update(salt)
        if i % 7:
            ctx.update(password)
        ctx.update(digest if i & 1 else password)
        digest = ctx.digest()

    return h64.encode_transposed_bytes(digest, _transpose_map)

#: h64 encodes each 3 byte group little-endian, so every group is reversed
_transpose_map = tuple(
    idx
    for start in range(0, 15, 3)
    for idx in reversed(_CHECKSUM_ORDER[start:start+3])
) + _CHECKSUM_ORDER[15:]

#=========================================================
#handler
#=========================================================
class md5_crypt(uh.HasManyBackends, uh.HasSalt, uh.GenericHandler):
    """This class implements the MD5-Crypt password hash (``$1$<salt>$<checksum>``).

    It supports a variable-length salt.

    The :meth:`hash` and :meth:`genconfig` methods accept the following optional keywords:

    :param salt:
        Optional salt string.
        If not specified, one will be autogenerated (this is recommended).
        If specified, it must be 0-8 characters, drawn from the regexp range ``[./0-9A-Za-z]``.

    It will use the first available of two possible backends:

    * the host's :func:`crypt()`, if it supports MD5-Crypt.
    * a pure python implementation of MD5-Crypt built into modcrypt.

    You can see which backend is in use by calling the :meth:`get_backend()` method.
    """
    #=========================================================
    #algorithm information
    #=========================================================
    #--GenericHandler--
    name = "md5_crypt"
    ident = "$1$"
    setting_kwds = ("salt", "salt_size")
    checksum_size = 22
    checksum_chars = uh.HASH64_CHARS

    #--HasSalt--
    min_salt_size = 0
    max_salt_size = 8
    salt_chars = uh.HASH64_CHARS

    #=========================================================
    #internal helpers
    #=========================================================

    @classmethod
    def from_string(cls, hash):
        salt, chk = uh.parse_mc2(hash, cls.ident, cls)
        return cls(salt=salt, checksum=chk)

    def to_string(self):
        return uh.render_mc2(self.ident, self.salt, self.checksum)

    #=========================================================
    #backends
    #=========================================================
    backends = ("os_crypt", "builtin")

    _has_backend_builtin = True

    @classproperty
    def _has_backend_os_crypt(cls):
        return test_crypt("test", '$1$test$pi/xDtU5WFVRqYS6BMU8X/')

    def _calc_checksum_builtin(self, secret):
        return raw_md5_crypt(secret, self.salt)

    def _calc_checksum_os_crypt(self, secret):
        hash = safe_crypt(secret, self.ident + self.salt)
        if hash:
            return hash[-22:]
        else:
            return self._calc_checksum_builtin(secret)

    #=========================================================
    #eoc
    #=========================================================

#=========================================================
#eof
#=========================================================
