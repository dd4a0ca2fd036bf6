"""modcrypt.handlers.des_crypt - traditional unix (DES) crypt and BSDi's extended variant

the DES block cipher isn't implemented inside modcrypt: both hashes use
the host's :func:`crypt()` when it supports them, and otherwise run the
DES primitive offered by :mod:`passlib.crypto.des`.
this module only handles key setup, salt decoding and the string framing.

.. note::

    modcrypt restricts salt characters to just the hash64 charset,
    and requires salts of exactly the right size; since implementations
    vary in how they treat other characters and sizes
    (some map them through lookup tables, others read past the end of the salt).
"""
#=========================================================
#imports
#=========================================================
#core
import re
import logging; log = logging.getLogger(__name__)
#site
from passlib.crypto.des import des_encrypt_int_block
#libs
from modcrypt.exc import InvalidHashError
from modcrypt.utils import classproperty, h64, h64big, safe_crypt, test_crypt
import modcrypt.utils.handlers as uh
#pkg
#local
__all__ = [
    "des_crypt",
    "bsdi_crypt",
]

#=========================================================
#key setup & raw checksum calculation
#=========================================================
B_NULL = b"\x00"

def _crypt_secret_to_key(secret):
    "crypt helper which converts lower 7 bits of first 8 chars of secret -> 56-bit des key, padded to 64 bits"
    return sum(
        (c & 0x7f) << (57-8*i)
        for i, c in enumerate(secret[:8])
    )

def raw_crypt(secret, salt):
    "calculate des-crypt checksum, using passlib's DES primitive"
    assert len(salt) == 2

    salt_value = h64.decode_int12(salt)

    #forbidding nul chars because crypt() (and most C implementations) won't accept it either.
    if B_NULL in secret:
        raise ValueError("null char in secret")

    #convert first 8 bytes of secret string into an integer
    key_value = _crypt_secret_to_key(secret)

    #run data through des using input of 0
    result = des_encrypt_int_block(key_value, 0, salt_value, 25)

    #run h64 encode on result
    return h64big.encode_int64(result)

def raw_ext_crypt(secret, rounds, salt):
    "ext_crypt() helper which returns checksum only"

    #decode salt
    salt_value = h64.decode_int24(salt)

    #validate secret
    if B_NULL in secret:
        raise ValueError("null char in secret")

    #convert secret string into an integer,
    # folding each additional 8 byte block into the key
    key_value = _crypt_secret_to_key(secret)
    idx = 8
    end = len(secret)
    while idx < end:
        next = idx+8
        key_value = des_encrypt_int_block(key_value, key_value) ^ \
                                        _crypt_secret_to_key(secret[idx:next])
        idx = next

    #run data through des using input of 0
    result = des_encrypt_int_block(key_value, 0, salt_value, rounds)

    #run h64 encode on result
    return h64big.encode_int64(result)

#=========================================================
#handler
#=========================================================
class des_crypt(uh.HasManyBackends, uh.HasSalt, uh.GenericHandler):
    """This class implements the des-crypt password hash (``<2-char-salt><11-char-checksum>``).

    It supports a fixed-length salt.

    The :meth:`hash` and :meth:`genconfig` methods accept the following optional keywords:

    :param salt:
        Optional salt string.
        If not specified, one will be autogenerated (this is recommended).
        If specified, it must be 2 characters, drawn from the regexp range ``[./0-9A-Za-z]``.

    Only the first 8 bytes of the password are used; passwords containing
    NUL bytes can't be hashed, and result in the ``*0`` / ``*1`` sentinel.

    It will use the first available of two possible backends:

    * the host's :func:`crypt()`, if it supports des-crypt (most unix systems).
    * :mod:`passlib`'s DES implementation.

    You can see which backend is in use by calling the :meth:`get_backend()` method.
    """

    #=========================================================
    #class attrs
    #=========================================================
    #--GenericHandler--
    name = "des_crypt"
    setting_kwds = ("salt",)
    generation_kwds = ()
    checksum_size = 11
    checksum_chars = uh.HASH64_CHARS

    #--HasSalt--
    min_salt_size = max_salt_size = 2
    salt_chars = uh.HASH64_CHARS

    #=========================================================
    #formatting
    #=========================================================
    #FORMAT: 2 chars of H64-encoded salt + 11 chars of H64-encoded checksum

    @classmethod
    def from_string(cls, hash):
        hash = uh._norm_hash_str(hash, cls)
        if len(hash) not in (2, 13):
            raise InvalidHashError(cls)
        salt, chk = hash[:2], hash[2:]
        return cls(salt=salt, checksum=chk or None)

    def to_string(self):
        return "%s%s" % (self.salt, self.checksum or '')

    #=========================================================
    #backend
    #=========================================================
    backends = ("os_crypt", "passlib")

    _has_backend_passlib = True

    @classproperty
    def _has_backend_os_crypt(cls):
        return test_crypt("test", 'abgOeLfPimXQo')

    def _calc_checksum_passlib(self, secret):
        return raw_crypt(secret, self.salt)

    def _calc_checksum_os_crypt(self, secret):
        #safe_crypt() would hide this, and fall back to the other backend
        if B_NULL in secret:
            raise ValueError("null char in secret")
        hash = safe_crypt(secret, self.salt)
        if hash:
            return hash[2:]
        else:
            return self._calc_checksum_passlib(secret)

    #=========================================================
    #eoc
    #=========================================================

#=========================================================
#handler
#=========================================================
class bsdi_crypt(uh.HasManyBackends, uh.HasRounds, uh.HasSalt, uh.GenericHandler):
    """This class implements the BSDi-Crypt password hash
    (``_<4-char-rounds><4-char-salt><11-char-checksum>``).

    It supports a fixed-length salt, and a variable number of rounds.

    The :meth:`hash` and :meth:`genconfig` methods accept the following optional keywords:

    :param salt:
        Optional salt string.
        If not specified, one will be autogenerated (this is recommended).
        If specified, it must be 4 characters, drawn from the regexp range ``[./0-9A-Za-z]``.

    :param rounds:
        Optional number of rounds to use.
        Defaults to 5001, must be an odd number between 1 and 16777215, inclusive.
        Even values reveal weak DES keys, so :meth:`genconfig` refuses them;
        existing hashes which use them are still accepted.

    It will use the first available of two possible backends:

    * the host's :func:`crypt()`, if it supports bsdi-crypt (most BSD systems).
    * :mod:`passlib`'s DES implementation.

    You can see which backend is in use by calling the :meth:`get_backend()` method.
    """
    #=========================================================
    #class attrs
    #=========================================================
    #--GenericHandler--
    name = "bsdi_crypt"
    setting_kwds = ("salt", "rounds")
    generation_kwds = ()
    checksum_size = 11
    checksum_chars = uh.HASH64_CHARS

    #--HasSalt--
    min_salt_size = max_salt_size = 4
    salt_chars = uh.HASH64_CHARS

    #--HasRounds--
    default_rounds = 5001
    min_rounds = 1
    max_rounds = 16777215 # (1<<24)-1
    rounds_cost = "linear"

    def _norm_rounds(self, rounds):
        rounds = super(bsdi_crypt, self)._norm_rounds(rounds)
        if self.use_defaults and not rounds & 1:
            raise self._invalid("rounds", "must be odd")
        return rounds

    #=========================================================
    #internal helpers
    #=========================================================
    _pat = re.compile(r"""
        ^
        _
        (?P<rounds>.{4})
        (?P<salt>.{4})
        (?P<chk>.*)
        $""", re.X|re.S)

    @classmethod
    def from_string(cls, hash):
        hash = uh._norm_hash_str(hash, cls)
        m = cls._pat.match(hash)
        if not m:
            raise InvalidHashError(cls)
        rounds, salt, chk = m.group("rounds", "salt", "chk")
        return cls(
            rounds=h64.decode_int24(rounds),
            salt=salt,
            checksum=chk or None,
        )

    def to_string(self):
        return "_%s%s%s" % (h64.encode_int24(self.rounds), self.salt, self.checksum or '')

    #=========================================================
    #backend
    #=========================================================
    backends = ("os_crypt", "passlib")

    _has_backend_passlib = True

    @classproperty
    def _has_backend_os_crypt(cls):
        return test_crypt("test", '_/...lLDAxARksGCHin.')

    def _calc_checksum_passlib(self, secret):
        return raw_ext_crypt(secret, self.rounds, self.salt)

    def _calc_checksum_os_crypt(self, secret):
        if B_NULL in secret:
            raise ValueError("null char in secret")
        hash = safe_crypt(secret, self.to_string())
        if hash:
            return hash[9:]
        else:
            return self._calc_checksum_passlib(secret)

    #=========================================================
    #eoc
    #=========================================================

#=========================================================
#eof
#=========================================================
