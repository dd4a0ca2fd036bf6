"""modcrypt utility functions"""
#=================================================================================
#imports
#=================================================================================
#core
import logging; log = logging.getLogger(__name__)
#site
try:
    # NOTE: legacycrypt raises ImportError when the host lacks libcrypt,
    #       in which case the "os_crypt" backends are reported as unavailable.
    from legacycrypt import crypt as _os_crypt
except ImportError: #pragma: no cover
    _os_crypt = None
#pkg
from modcrypt.utils.binary import BASE64_CHARS, HASH64_CHARS, BCRYPT_CHARS, \
    AB64_CHARS, Base64Engine, h64, h64big, bcrypt64, ab64_encode, ab64_decode
#local
__all__ = [
    #decorators
    "classproperty",

    #misc
    'safe_crypt',
    'test_crypt',

    #tests
    'is_crypt_handler',

    #bytes<->unicode
    'to_bytes',
    'to_unicode',

    # string manipulation
    'consteq',
    'splitcomma',

    # base64 helpers
    "BASE64_CHARS", "HASH64_CHARS", "BCRYPT_CHARS", "AB64_CHARS",
    "Base64Engine", "h64", "h64big", "bcrypt64",
    "ab64_encode", "ab64_decode",
]

#=================================================================================
#decorators and meta helpers
#=================================================================================
class classproperty(object):
    """Function decorator which acts like a combination of classmethod+property (limited to read-only properties)"""

    def __init__(self, func):
        self.im_func = func

    def __get__(self, obj, cls):
        return self.im_func(cls)

    @property
    def __func__(self):
        "alias for wrapped function"
        return self.im_func

def is_crypt_handler(obj):
    "check if object follows the :ref:`password-hash-api`"
    return all(hasattr(obj, name) for name in (
        "name",
        "setting_kwds",
        "genconfig", "parseconfig", "genhash",
        "hash", "verify", "identify",
        ))

#==========================================================
#bytes <-> unicode conversion helpers
#==========================================================

def to_bytes(source, encoding="utf-8", errname="value"):
    """helper to encoding unicode -> bytes

    this function takes in a ``source`` string.
    if unicode, encodes it using the specified ``encoding``.
    if bytes, returns unchanged.
    all other types result in a :exc:`TypeError`.

    :arg source: source bytes/unicode to process
    :arg encoding: target character encoding
    :param errname: optional name of variable/noun to reference when raising errors

    :returns: bytes object
    """
    if isinstance(source, bytes):
        return source
    elif isinstance(source, str):
        return source.encode(encoding)
    else:
        raise TypeError("%s must be unicode or bytes, not %s" % (errname, type(source)))

def to_unicode(source, source_encoding="utf-8", errname="value"):
    """take in unicode or bytes, return unicode

    if bytes provided, decodes using specified encoding.
    leaves unicode alone.

    :raises TypeError: if source is not unicode or bytes.

    :returns: unicode object
    """
    if isinstance(source, str):
        return source
    elif isinstance(source, bytes):
        return source.decode(source_encoding)
    else:
        raise TypeError("%s must be unicode or %s-encoded bytes, not %s" %
                        (errname, source_encoding, type(source)))

#=================================================================================
#string helpers
#=================================================================================

def consteq(left, right):
    """compare two str or two bytes values for equality,
    in time proportional to ``len(right)`` only.

    used when comparing checksums, so the comparison time doesn't
    reveal how much of a guessed hash was correct.
    callers should pass the stored hash as *right*.

    :raises TypeError: if the inputs aren't both str or both bytes.
    """
    if isinstance(left, str) and isinstance(right, str):
        left = left.encode("utf-8")
        right = right.encode("utf-8")
    elif not (isinstance(left, bytes) and isinstance(right, bytes)):
        raise TypeError("inputs must be both unicode or bytes")

    # on a size mismatch, compare right against itself so the loop
    # still runs len(right) times, with result pre-set to fail.
    if len(left) == len(right):
        other, result = left, 0
    else:
        other, result = right, 1
    for l, r in zip(other, right):
        result |= l ^ r
    return result == 0

def splitcomma(source, sep=","):
    """split comma-separated string into list of elements,
    stripping whitespace and discarding empty elements.
    """
    return [
        elem.strip()
        for elem in source.split(sep)
        if elem.strip()
    ]

#=================================================================================
#os crypt helpers
#=================================================================================

def safe_crypt(secret, hash):
    """wrapper around the host's :func:`crypt`, as exposed by :mod:`legacycrypt`.

    legacycrypt only accepts passwords as unicode, encoding them
    to utf-8 before hashing; so there is no way to hash passwords
    which aren't valid utf-8. this wrapper glosses over that
    by signalling it can't handle such passwords, letting the caller
    fall back to another backend.

    :arg secret: password as bytes or unicode
    :arg hash: hash/salt as unicode
    :returns:
        ``None`` if the password can't be hashed by crypt(3),
        or if crypt(3) rejected the configuration;
        otherwise the resulting hash string.
    """
    if _os_crypt is None:
        return None
    if isinstance(secret, bytes):
        # decode secret using utf-8, and make sure it re-encodes to
        # match the original - otherwise the call to crypt()
        # will encode the wrong password.
        orig = secret
        try:
            secret = secret.decode("utf-8")
        except UnicodeDecodeError:
            return None
        if secret.encode("utf-8") != orig:
            return None
    if "\x00" in secret:
        # crypt(3) silently truncates at the first NUL
        return None
    if isinstance(hash, bytes):
        hash = hash.decode("ascii")
    result = _os_crypt(secret, hash)
    if not result or result[0] in "*!":
        return None
    return result

def test_crypt(secret, hash):
    """check if :func:`safe_crypt` supports specific hash
    by testing a known secret/hash pair against it.

    this is used by the ``_has_backend_os_crypt`` probes
    of the multi-backend handlers.
    """
    assert secret and hash
    return safe_crypt(secret, hash) == hash

#=================================================================================
#eof
#=================================================================================
