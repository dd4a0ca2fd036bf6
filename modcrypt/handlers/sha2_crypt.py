"""modcrypt.handlers.sha2_crypt - SHA256/512-CRYPT

neither variant is implemented inside modcrypt: the checksum is computed
by the host's :func:`crypt()` when it supports the scheme,
and by :mod:`passlib`'s implementation otherwise.
this module only handles the configuration string framing.
"""
#=========================================================
#imports
#=========================================================
#core
import re
import logging; log = logging.getLogger(__name__)
#site
from passlib.hash import sha256_crypt as _passlib_sha256_crypt, \
                        sha512_crypt as _passlib_sha512_crypt
#libs
from modcrypt.exc import InvalidHashError
from modcrypt.utils import classproperty, safe_crypt, test_crypt
import modcrypt.utils.handlers as uh
#pkg
#local
__all__ = [
    "sha256_crypt",
    "sha512_crypt",
]

#: rounds value which may be omitted from the hash string
IMPLICIT_ROUNDS = 5000

#=========================================================
#common code
#=========================================================
class _SHA2Common(uh.HasManyBackends, uh.HasRounds, uh.HasSalt, uh.GenericHandler):
    "common code for sha256_crypt and sha512_crypt"
    #=========================================================
    #algorithm information
    #=========================================================
    #--GenericHandler--
    #name, ident, checksum_size in subclass
    setting_kwds = ("salt", "salt_size", "rounds")
    checksum_chars = uh.HASH64_CHARS

    #--HasSalt--
    min_salt_size = 0
    max_salt_size = 16
    salt_chars = uh.HASH64_CHARS

    #--HasRounds--
    #default_rounds in subclass
    min_rounds = 1000
    max_rounds = 999999999
    rounds_cost = "linear"

    #: passlib handler used by the "passlib" backend
    _passlib_handler = None

    #: known hash used to detect os_crypt support
    _os_crypt_test_hash = None

    #=========================================================
    #init
    #=========================================================
    def __init__(self, implicit_rounds=None, **kwds):
        if implicit_rounds is None:
            implicit_rounds = True
        self.implicit_rounds = implicit_rounds
        super(_SHA2Common, self).__init__(**kwds)

    #=========================================================
    #parsing
    #=========================================================
    _hash_regex = re.compile(r"""
        ^
        \$(?P<ident>[56])
        (\$rounds=(?P<rounds>[^$]*))?
        \$
        (?P<salt>[^$]*)
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
        if not m or "$%s$" % m.group("ident") != cls.ident:
            raise InvalidHashError(cls)
        rounds, salt, chk = m.group("rounds", "salt", "chk")
        return cls(
            implicit_rounds=rounds is None,
            rounds=IMPLICIT_ROUNDS if rounds is None else uh.parse_int(rounds, cls),
            salt=salt,
            checksum=chk or None,
        )

    def to_string(self):
        if self.rounds == IMPLICIT_ROUNDS and self.implicit_rounds:
            config = "%s%s" % (self.ident, self.salt)
        else:
            config = "%srounds=%d$%s" % (self.ident, self.rounds, self.salt)
        return uh.render_mc2(config, "", self.checksum)

    #=========================================================
    #backends
    #=========================================================
    backends = ("os_crypt", "passlib")

    _has_backend_passlib = True

    @classproperty
    def _has_backend_os_crypt(cls):
        return test_crypt("test", cls._os_crypt_test_hash)

    def _calc_checksum_passlib(self, secret):
        handler = self._passlib_handler.using(salt=self.salt, rounds=self.rounds)
        return handler.hash(secret).rpartition("$")[2]

    def _calc_checksum_os_crypt(self, secret):
        hash = safe_crypt(secret, self.to_string())
        if hash:
            #NOTE: avoiding full parsing routine via from_string().checksum,
            # and just extracting the bit we need.
            chk = hash[-self.checksum_size:]
            assert "$" not in chk
            return chk
        else:
            return self._calc_checksum_passlib(secret)

    #=========================================================
    #eoc
    #=========================================================

#=========================================================
#sha 256 crypt
#=========================================================
class sha256_crypt(_SHA2Common):
    """This class implements the SHA256-Crypt password hash.

    It supports a variable-length salt, and a variable number of rounds.

    The :meth:`hash` and :meth:`genconfig` methods accept the following optional keywords:

    :param salt:
        Optional salt string.
        If not specified, a 16 character one will be autogenerated (this is recommended).
        If specified, it must be 0-16 characters, drawn from the regexp range ``[./0-9A-Za-z]``.

    :param rounds:
        Optional number of rounds to use.
        Defaults to 5000, must be between 1000 and 999999999, inclusive.
        The ``rounds=`` field is omitted from generated strings when it's 5000;
        hashes which spell it out explicitly are preserved as they are.

    It will use the first available of two possible backends:

    * the host's :func:`crypt()`, if it supports SHA256-Crypt.
    * :mod:`passlib`'s implementation of SHA256-Crypt.

    You can see which backend is in use by calling the :meth:`get_backend()` method.
    """
    name = "sha256_crypt"
    ident = "$5$"
    checksum_size = 43
    default_rounds = 5000

    _passlib_handler = _passlib_sha256_crypt
    _os_crypt_test_hash = ("$5$rounds=1000$test$QmQADEXMG8POI5W"
                           "Dsaeho0P36yK3Tcrgboabng6bkb/")

#=========================================================
#sha 512 crypt
#=========================================================
class sha512_crypt(_SHA2Common):
    """This class implements the SHA512-Crypt password hash.

    Aside from the digest (and a default of 60000 rounds), it behaves
    exactly like :class:`sha256_crypt`.
    """
    name = "sha512_crypt"
    ident = "$6$"
    checksum_size = 86
    default_rounds = 60000

    _passlib_handler = _passlib_sha512_crypt
    _os_crypt_test_hash = ("$6$rounds=1000$test$2M/Lx6Mtobqj"
                           "Ljobw0Wmo4Q5OFx5nVLJvmgseatA6oMn"
                           "yWeBdRDx4DU.1H3eGmse6pgsOgDisWBG"
                           "I5c7TZauS0")

#=========================================================
#eof
#=========================================================
