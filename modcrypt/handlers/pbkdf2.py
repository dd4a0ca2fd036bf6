"""modcrypt.handlers.pbkdf2 - PBKDF2 based hashes"""
#=========================================================
#imports
#=========================================================
#core
import re
import logging; log = logging.getLogger(__name__)
#site
#libs
from modcrypt.exc import InvalidHashError
from modcrypt.rng import getrandbytes, srandom
from modcrypt.utils import ab64_decode, ab64_encode, AB64_CHARS
from modcrypt.utils.pbkdf2 import pbkdf2 as _pbkdf2
import modcrypt.utils.handlers as uh
#pkg
#local
__all__ = [
    "pbkdf2",
]

#: size of derived key (raw bytes) for each supported digest
_digest_sizes = {
    "sha1": 20,
    "sha256": 32,
    "sha512": 64,
}

#=========================================================
#pbkdf2 hashes
#=========================================================
class pbkdf2(uh.HasRounds, uh.HasSalt, uh.GenericHandler):
    """This class implements PBKDF2-HMAC hashes using sha1, sha256 or sha512
    (``$pbkdf2[-<digest>]$<rounds>$<salt>$<checksum>``).

    It supports a variable-length salt, and a variable number of rounds.
    The salt and checksum are stored using the "adapted base64" encoding
    (standard base64, with ``.`` instead of ``+``, and no padding).

    The :meth:`hash` and :meth:`genconfig` methods accept the following optional keywords:

    :param digest:
        one of ``"sha1"``, ``"sha256"`` or ``"sha512"`` (the default).
        the sha1 variant omits the digest from its prefix (``$pbkdf2$``).

    :param salt:
        Optional salt string.
        If specified, it must be up to 1366 characters of adapted base64.

    :param salt_size:
        Optional number of random bytes to use when generating the salt.
        Defaults to 16, must be between 0 and 1024, inclusive.

    :param rounds:
        Optional number of rounds to use.
        Defaults to 12000, must be between 1 and 4294967296, inclusive.
    """

    #=========================================================
    #class attrs
    #=========================================================
    #--GenericHandler--
    name = "pbkdf2"
    setting_kwds = ("digest", "salt", "salt_size", "rounds")
    checksum_chars = AB64_CHARS

    default_digest = "sha512"
    digest_values = ("sha1", "sha256", "sha512")

    #--HasSalt--
    default_salt_size = 16 # in bytes
    max_salt_bytes = 1024
    min_salt_size = 0
    max_salt_size = 1366 # in chars, the encoded size of max_salt_bytes
    salt_chars = AB64_CHARS

    #--HasRounds--
    default_rounds = 12000
    min_rounds = 1
    max_rounds = 4294967296
    rounds_cost = "linear"

    #=========================================================
    #instance attrs
    #=========================================================
    digest = None

    #=========================================================
    #init
    #=========================================================
    def __init__(self, digest=None, use_defaults=False, **kwds):
        self.digest = self._norm_digest(digest, use_defaults)
        super(pbkdf2, self).__init__(use_defaults=use_defaults, **kwds)

    def _norm_digest(self, digest, use_defaults):
        if digest is None:
            if not use_defaults:
                raise TypeError("no digest specified")
            digest = self.default_digest
        if isinstance(digest, bytes):
            digest = digest.decode("ascii")
        if isinstance(digest, str) and digest.lower() in self.digest_values:
            return digest.lower()
        raise self._invalid("digest", "must be one of %s" % ", ".join(self.digest_values))

    @property
    def checksum_size(self):
        return (_digest_sizes[self.digest] * 4 + 2) // 3

    @property
    def ident(self):
        if self.digest == "sha1":
            return "$pbkdf2$"
        return "$pbkdf2-%s$" % (self.digest,)

    def _norm_salt_size(self, salt_size):
        if salt_size is None:
            return self.default_salt_size
        if not isinstance(salt_size, int) or isinstance(salt_size, bool):
            raise self._invalid("salt_size", "must be an integer")
        if salt_size < 0 or salt_size > self.max_salt_bytes:
            raise self._invalid("salt_size", "must be between 0 and %d" % (self.max_salt_bytes,))
        return salt_size

    def _norm_salt(self, salt, salt_size=None):
        salt = super(pbkdf2, self)._norm_salt(salt, salt_size=salt_size)
        try:
            ab64_decode(salt)
        except ValueError:
            raise self._invalid("salt", "not valid adapted base64")
        return salt

    def _generate_salt(self, salt_size):
        return ab64_encode(getrandbytes(srandom, salt_size))

    #=========================================================
    #formatting
    #=========================================================
    _hash_regex = re.compile(r"""
        ^
        \$pbkdf2
        (-(?P<digest>sha256|sha512))?
        \$(?P<rounds>[^$]*)
        \$(?P<salt>[^$]*)
        (
            \$
            (?P<chk>[^$]*)
        )?
        $
        """, re.X)

    @classmethod
    def from_string(cls, hash):
        hash = uh._norm_hash_str(hash, cls)
        m = cls._hash_regex.match(hash)
        if not m:
            raise InvalidHashError(cls)
        digest, rounds, salt, chk = m.group("digest", "rounds", "salt", "chk")
        return cls(
            digest=digest or "sha1",
            rounds=uh.parse_int(rounds, cls),
            salt=salt,
            checksum=chk or None,
        )

    def to_string(self):
        return uh.render_mc3(self.ident, self.rounds, self.salt, self.checksum)

    #=========================================================
    #backend
    #=========================================================
    def calc_checksum(self, secret):
        salt = ab64_decode(self.salt)
        result = _pbkdf2(secret, salt, self.rounds, _digest_sizes[self.digest], self.digest)
        return ab64_encode(result)

    #=========================================================
    #eoc
    #=========================================================

#=========================================================
#eof
#=========================================================
