"""modcrypt.handlers.sha1_crypt - NetBSD's HMAC-SHA1 based crypt"""
#=========================================================
#imports
#=========================================================
#core
import logging; log = logging.getLogger(__name__)
#site
#libs
from modcrypt.utils import h64
from modcrypt.utils.pbkdf2 import get_keyed_prf
import modcrypt.utils.handlers as uh
#pkg
#local
__all__ = [
    "sha1_crypt",
]

#=========================================================
#sha1-crypt
#=========================================================
class sha1_crypt(uh.HasRounds, uh.HasSalt, uh.GenericHandler):
    """This class implements the SHA1-Crypt password hash (``$sha1$<rounds>$<salt>$<checksum>``).

    It supports a variable-length salt, and a variable number of rounds.

    The :meth:`hash` and :meth:`genconfig` methods accept the following optional keywords:

    :param salt:
        Optional salt string.
        If not specified, an 8 character one will be autogenerated (this is recommended).
        If specified, it must be 0-64 characters, drawn from the regexp range ``[./0-9A-Za-z]``.

    :param rounds:
        Optional number of rounds to use.
        Defaults to 40000, must be between 1 and 4294967295, inclusive.
    """

    #=========================================================
    #class attrs
    #=========================================================
    #--GenericHandler--
    name = "sha1_crypt"
    setting_kwds = ("salt", "salt_size", "rounds")
    ident = "$sha1$"
    checksum_size = 28
    checksum_chars = uh.HASH64_CHARS

    #--HasSalt--
    default_salt_size = 8
    min_salt_size = 0
    max_salt_size = 64
    salt_chars = uh.HASH64_CHARS

    #--HasRounds--
    default_rounds = 40000
    min_rounds = 1
    max_rounds = 4294967295 # 32-bit integer limit
    rounds_cost = "linear"

    #=========================================================
    #formatting
    #=========================================================
    @classmethod
    def from_string(cls, hash):
        rounds, salt, chk = uh.parse_mc3(hash, cls.ident, cls)
        return cls(
            rounds=uh.parse_int(rounds, cls),
            salt=salt,
            checksum=chk,
        )

    def to_string(self):
        return uh.render_mc3(self.ident, self.rounds, self.salt, self.checksum)

    #=========================================================
    #backend
    #=========================================================
    def calc_checksum(self, secret):
        rounds = self.rounds
        prf = get_keyed_prf("sha1", secret)[0]
        result = ("%s$sha1$%s" % (self.salt, rounds)).encode("ascii")
        r = 0
        while r < rounds:
            result = prf(result)
            r += 1
        return h64.encode_transposed_bytes(result, self._chk_offsets)

    # the resulting 20 byte digest is shuffled (repeating byte 0)
    # before being encoded
    _chk_offsets = [
        2,1,0,
        5,4,3,
        8,7,6,
        11,10,9,
        14,13,12,
        17,16,15,
        0,19,18,
    ]

    #=========================================================
    #eoc
    #=========================================================

#=========================================================
#eof
#=========================================================
