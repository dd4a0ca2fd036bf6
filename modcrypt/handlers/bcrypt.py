"""modcrypt.handlers.bcrypt - OpenBSD's Blowfish-based password hash

the EksBlowfish key schedule itself comes from the :mod:`bcrypt` package
(or the host's :func:`crypt()`, if it supports the scheme);
this module implements the configuration string framing around it.
"""
#=========================================================
#imports
#=========================================================
#core
import re
import logging; log = logging.getLogger(__name__)
#site
import bcrypt as _bcrypt
#libs
from modcrypt.exc import InvalidHashError, MalformedHashError
from modcrypt.rng import getrandbytes, srandom
from modcrypt.utils import bcrypt64, classproperty, safe_crypt, test_crypt
import modcrypt.utils.handlers as uh
#pkg
#local
__all__ = [
    "bcrypt",
]

#: bcrypt only looks at the first 72 bytes of the password
MAX_PASSWORD_SIZE = 72

#=========================================================
#handler
#=========================================================
class bcrypt(uh.HasManyBackends, uh.HasManyIdents, uh.HasRounds, uh.HasSalt, uh.GenericHandler):
    """This class implements the BCrypt password hash
    (``$<ident>$<2-digit-cost>$<22-char-salt><31-char-checksum>``).

    It supports a fixed-length salt, and a variable number of rounds.

    The :meth:`hash` and :meth:`genconfig` methods accept the following optional keywords:

    :param salt:
        Optional salt string.
        If not specified, one will be autogenerated (this is recommended).
        If specified, it must be 22 characters, drawn from the regexp range ``[./0-9A-Za-z]``.

    :param rounds:
        Optional number of rounds to use.
        Defaults to 12, must be between 4 and 31, inclusive.
        This value is logarithmic, the actual number of iterations used will be :samp:`2**{rounds}`.

    :param ident:
        selects the version tag; one of ``"2a"`` (the default), ``"2y"`` or ``"2x"``.

    Passwords are truncated to 72 bytes, as bcrypt ignores anything past that.
    Passwords containing NUL bytes can't be hashed; :meth:`genhash` returns
    the ``*0`` / ``*1`` sentinel for them.
    """

    #=========================================================
    #class attrs
    #=========================================================
    #--GenericHandler--
    name = "bcrypt"
    setting_kwds = ("salt", "rounds", "ident")
    generation_kwds = ()
    checksum_size = 31
    checksum_chars = uh.BCRYPT_CHARS

    #--HasManyIdents--
    default_ident = "2a"
    ident_values = ("2a", "2y", "2x")

    #--HasSalt--
    min_salt_size = max_salt_size = 22
    salt_chars = uh.BCRYPT_CHARS

    #--HasRounds--
    default_rounds = 12
    min_rounds = 4
    max_rounds = 31
    rounds_cost = "log2"

    #=========================================================
    #formatting
    #=========================================================
    _hash_regex = re.compile(r"""
        ^
        \$(?P<ident>[^$]+)
        \$(?P<rounds>[^$]*)
        \$(?P<salt>[^$]{0,22})
        (?P<chk>[^$]*)
        $
        """, re.X)

    @classmethod
    def from_string(cls, hash):
        hash = uh._norm_hash_str(hash, cls)
        m = cls._hash_regex.match(hash)
        if not m:
            raise InvalidHashError(cls)
        ident, rounds, salt, chk = m.group("ident", "rounds", "salt", "chk")
        if len(rounds) != 2 or not rounds.isdigit():
            raise MalformedHashError(cls, "cost must be exactly 2 digits")
        return cls(
            ident=ident,
            rounds=int(rounds),
            salt=salt,
            checksum=chk or None,
        )

    def to_string(self):
        return "$%s$%02d$%s%s" % (self.ident, self.rounds, self.salt, self.checksum or "")

    def _generate_salt(self, salt_size):
        # encoding 16 bytes leaves the 4 padding bits of the last char clear,
        # which is the canonical form other implementations produce.
        return bcrypt64.encode_bytes(getrandbytes(srandom, 16))

    #=========================================================
    #backends
    #=========================================================
    backends = ("bcrypt", "os_crypt")

    _has_backend_bcrypt = True

    @classproperty
    def _has_backend_os_crypt(cls):
        return test_crypt("U*U", "$2a$05$CCCCCCCCCCCCCCCCCCCCC.E5YPO9kmyuRGyh0XouQYb4YMJKvyOeW")

    def _prepare_secret(self, secret):
        if b"\x00" in secret:
            raise ValueError("bcrypt passwords can't contain NUL bytes")
        return secret[:MAX_PASSWORD_SIZE]

    def _calc_checksum_bcrypt(self, secret):
        secret = self._prepare_secret(secret)
        config = self.to_string()[:29].encode("ascii")
        hash = _bcrypt.hashpw(secret, config).decode("ascii")
        return hash[-31:]

    def _calc_checksum_os_crypt(self, secret):
        secret = self._prepare_secret(secret)
        hash = safe_crypt(secret, self.to_string()[:29])
        if hash:
            return hash[-31:]
        else:
            return self._calc_checksum_bcrypt(secret)

    #=========================================================
    #eoc
    #=========================================================

#=========================================================
#eof
#=========================================================
