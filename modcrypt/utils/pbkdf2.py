"""modcrypt.utils.pbkdf2 - PBKDF2 key derivation algorithm & keyed HMAC helpers

this module provides the pkcs#5 v2.0 key derivation function
(:func:`pbkdf2`), along with :func:`get_keyed_prf`,
which is also used by sha1-crypt to perform its hmac stretching loop.
"""
#=================================================================================
#imports
#=================================================================================
#core
import hashlib
import logging; log = logging.getLogger(__name__)
from struct import pack
#site
#pkg
from modcrypt.exc import ExpectedTypeError, MissingBackendError
#local
__all__ = [
    "get_hash_info",
    "get_keyed_prf",
    "pbkdf2",
]

#=================================================================================
#hash helpers
#=================================================================================

#: digest names accepted by the pbkdf2 hashes, mapped to hashlib names
_hash_aliases = {
    "sha1": "sha1",
    "sha-1": "sha1",
    "sha256": "sha256",
    "sha-256": "sha256",
    "sha512": "sha512",
    "sha-512": "sha512",
}

_ghi_cache = {}

def get_hash_info(name):
    """return ``(hash_constructor, digest_size, block_size)`` for named digest.

    :raises modcrypt.exc.MissingBackendError:
        if the local :mod:`hashlib` doesn't offer the digest;
        this is never silently replaced by a weaker digest.
    """
    try:
        return _ghi_cache[name]
    except KeyError:
        pass
    hname = _hash_aliases.get(name.lower(), name.lower())
    try:
        const = getattr(hashlib, hname)
        tmp = const()
    except (AttributeError, ValueError):
        try:
            tmp = hashlib.new(hname)
        except ValueError:
            raise MissingBackendError("hash digest not available: %r" % (name,))
        const = lambda msg=b"": hashlib.new(hname, msg)
    info = _ghi_cache[name] = (const, tmp.digest_size, tmp.block_size)
    return info

#=================================================================================
#keyed prf generation
#=================================================================================
_TRANS_5C = bytes((x ^ 0x5C) for x in range(256))
_TRANS_36 = bytes((x ^ 0x36) for x in range(256))
_BNULL = b"\x00"

def get_keyed_prf(digest, key):
    """return efficent hmac() function hardcoded with specific digest and key.

    :arg digest: name of hash function (e.g. ``"sha256"``)
    :arg key: key encoded as bytes.

    :returns:
        tuple of :samp:`({bound_prf_func}, {digest_size})`,
        where function has signature `bound_prf_func(message) -> digest`.
    """
    # all the following was adapted from stdlib's hmac module
    if not isinstance(key, bytes):
        raise ExpectedTypeError(key, "bytes", "key")

    # resolve digest, get info
    const, digest_size, block_size = get_hash_info(digest)
    assert block_size >= 16, "unacceptably low block size"

    # prepare key
    klen = len(key)
    if klen > block_size:
        key = const(key).digest()
        klen = digest_size
    if klen < block_size:
        key += _BNULL * (block_size - klen)

    # return optimized hmac function for given key
    inner_proto = const(key.translate(_TRANS_36))
    outer_proto = const(key.translate(_TRANS_5C))
    def kprf(msg):
        inner = inner_proto.copy()
        inner.update(msg)
        outer = outer_proto.copy()
        outer.update(inner.digest())
        return outer.digest()
    return kprf, digest_size

#=================================================================================
#pbkdf2
#=================================================================================
_MAX_BLOCKS = 0xffffffff # 2**32-1

def pbkdf2(secret, salt, rounds, keylen=None, digest="sha1"):
    """pkcs#5 password-based key derivation v2.0

    :arg secret: passphrase to use to generate key
    :arg salt: salt string to use when generating key
    :param rounds: number of rounds to use to generate key
    :arg keylen:
        number of bytes to generate.
        if set to ``None``, will use digest size of selected digest.
    :param digest:
        name of the hash used by the hmac psuedo-random function;
        defaults to ``"sha1"``.

    :raises modcrypt.exc.MissingBackendError:
        if the requested digest isn't available.

    :returns:
        raw bytes of generated key
    """
    # validate secret & salt
    if not isinstance(secret, bytes):
        raise ExpectedTypeError(secret, "bytes", "secret")
    if not isinstance(salt, bytes):
        raise ExpectedTypeError(salt, "bytes", "salt")

    # validate rounds
    if not isinstance(rounds, int):
        raise ExpectedTypeError(rounds, "int", "rounds")
    if rounds < 1:
        raise ValueError("rounds must be at least 1")

    # generated keyed prf helper
    keyed_prf, digest_size = get_keyed_prf(digest, secret)

    # validate keylen
    if keylen is None:
        keylen = digest_size
    elif not isinstance(keylen, int):
        raise ExpectedTypeError(keylen, "int or None", "keylen")
    elif keylen < 0:
        raise ValueError("keylen must be at least 0")

    # work out min block count s.t. keylen <= block_count * digest_size
    block_count = (keylen + digest_size - 1) // digest_size
    if block_count >= _MAX_BLOCKS:
        raise ValueError("keylen too long for digest")

    # build up result from blocks
    def gen():
        for i in range(block_count):
            digest = keyed_prf(salt + pack(">L", i+1))
            accum = int.from_bytes(digest, "big")
            # speed-critical loop of pbkdf2
            # NOTE: currently converting digests to integers since that XORs faster.
            for _ in range(rounds-1):
                digest = keyed_prf(digest)
                accum ^= int.from_bytes(digest, "big")
            yield accum.to_bytes(digest_size, "big")
    return b"".join(gen())[:keylen]

#=============================================================================
# eof
#=============================================================================
