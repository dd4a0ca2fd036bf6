"""modcrypt.utils.handlers - framework for implementing password hash handlers

every hash scheme in :mod:`modcrypt.handlers` is a :class:`GenericHandler`
subclass, configured through class attributes which declare the constraints
of each setting (``min_rounds``, ``salt_chars``, ``ident_values``, ...).
the mixins below apply those declarations uniformly, both when validating
options passed to ``genconfig()`` and when parsing a configuration string,
so every scheme shares the same validation path.

handlers expose the following classmethods:

* ``genconfig(**options) -> config`` -- raises :exc:`~modcrypt.exc.InvalidOptionError`
* ``parseconfig(config) -> dict or False``
* ``genhash(secret, config) -> hash``, or one of the ``*0`` / ``*1`` sentinels
* ``hash(secret, config=None, **options) -> hash``
* ``verify(secret, hash) -> bool`` -- never raises for malformed input
* ``identify(hash) -> bool``
"""
#=========================================================
#imports
#=========================================================
#core
from collections.abc import Mapping
import logging; log = logging.getLogger(__name__)
#site
#libs
from modcrypt.exc import ChecksumSizeError, ExpectedStringError, \
                         InvalidHashError, InvalidOptionError, \
                         MalformedHashError, MissingBackendError, \
                         ZeroPaddedRoundsError
from modcrypt.rng import getrandbytes, srandom
from modcrypt.utils import classproperty, consteq, h64, to_bytes, \
                           BASE64_CHARS, HASH64_CHARS, BCRYPT_CHARS
#pkg
#local
__all__ = [
    #sentinel protocol
    'SENTINEL_HASHES',
    'sentinel_for',

    #framework for implementing handlers
    'GenericHandler',
        'HasManyIdents',
        'HasSalt',
        'HasRounds',
        'HasManyBackends',

    #parsing helpers
    'parse_mc2',
    'parse_mc3',
    'render_mc2',
    'render_mc3',
]

#=========================================================
#constants
#=========================================================

# common salt_chars & checksum_chars values, re-exported for handlers
# (BASE64_CHARS, HASH64_CHARS, BCRYPT_CHARS imported above)

#: the two strings returned by genhash() instead of a hash when the
#: configuration can't be used. neither can ever be a valid hash.
SENTINEL_HASHES = ("*0", "*1")

def sentinel_for(config):
    """return the failure string genhash() should use for *config*.

    this is always ``"*0"``, unless the config was itself ``"*0"``,
    in which case ``"*1"`` is returned; so a failure result can never
    be mistaken for the config that produced it.
    """
    return "*1" if config == "*0" else "*0"

#=========================================================
#parsing helpers
#=========================================================
def _norm_hash_str(hash, handler=None):
    "coerce hash string to str, raising TypeError / ValueError"
    if isinstance(hash, bytes):
        try:
            hash = hash.decode("ascii")
        except UnicodeDecodeError:
            raise InvalidHashError(handler)
    elif not isinstance(hash, str):
        raise ExpectedStringError(hash, "hash")
    return hash

def parse_mc2(hash, prefix, handler=None, sep="$"):
    "parse hash using 2-part modular crypt format"
    #eg: MD5-Crypt: $1$salt[$checksum]
    hash = _norm_hash_str(hash, handler)
    if not hash.startswith(prefix):
        raise InvalidHashError(handler)
    parts = hash[len(prefix):].split(sep)
    if len(parts) == 2:
        salt, chk = parts
        return salt, chk or None
    elif len(parts) == 1:
        return parts[0], None
    else:
        raise MalformedHashError(handler)

def parse_mc3(hash, prefix, handler=None, sep="$"):
    "parse hash using 3-part modular crypt format"
    #eg: SHA1-Crypt: $sha1$rounds$salt[$checksum]
    hash = _norm_hash_str(hash, handler)
    if not hash.startswith(prefix):
        raise InvalidHashError(handler)
    parts = hash[len(prefix):].split(sep)
    if len(parts) == 3:
        rounds, salt, chk = parts
        return rounds, salt, chk or None
    elif len(parts) == 2:
        rounds, salt = parts
        return rounds, salt, None
    else:
        raise MalformedHashError(handler)

def parse_int(value, handler=None, param="rounds"):
    """parse decimal integer field of a hash string.

    rejects empty values, signs, whitespace and zero-padding,
    so that every accepted string re-renders identically.
    """
    if not value or not value.isdigit() or not value.isascii():
        raise MalformedHashError(handler, "invalid %s field" % (param,))
    if value.startswith("0") and value != "0":
        raise ZeroPaddedRoundsError(handler, param)
    return int(value)

def render_mc2(ident, salt, checksum, sep="$"):
    "format hash using 2-part modular crypt format; inverse of parse_mc2"
    if checksum:
        return "%s%s%s%s" % (ident, salt, sep, checksum)
    else:
        return "%s%s" % (ident, salt)

def render_mc3(ident, rounds, salt, checksum, sep="$"):
    "format hash using 3-part modular crypt format; inverse of parse_mc3"
    if checksum:
        return "%s%s%s%s%s%s" % (ident, rounds, sep, salt, sep, checksum)
    else:
        return "%s%s%s%s" % (ident, rounds, sep, salt)

#=====================================================
#GenericHandler
#=====================================================
class GenericHandler(object):
    """base class for hash handlers.

    a handler instance holds one parsed hash (or configuration string);
    the public api consists of the classmethods below, which create
    instances through :meth:`from_string` or the constructor.

    subclasses declare their format through class attributes:
    :attr:`name` (registry key), :attr:`setting_kwds` (options accepted
    by :meth:`genconfig`), :attr:`generation_kwds` (options only used
    while generating, omitted by :meth:`parseconfig`), :attr:`ident`
    (hash prefix), and optionally :attr:`checksum_size` /
    :attr:`checksum_chars` (checked by :meth:`_norm_checksum`).
    they must implement :meth:`from_string`, :meth:`to_string`
    and :meth:`calc_checksum`.

    :param checksum: checksum portion of a parsed hash, or ``None``.

    :param use_defaults:
        set by :meth:`genconfig`; missing settings are filled in
        from class defaults (and salts generated).
        otherwise a missing setting raises :exc:`TypeError`,
        which :meth:`from_string` relies on.

    settings are never clamped; out-of-range values raise
    :exc:`~modcrypt.exc.InvalidOptionError` naming the setting.
    """

    #=====================================================
    #class attr
    #=====================================================
    name = None
    setting_kwds = ()
    generation_kwds = ("salt_size",)

    ident = None #identifier prefix if known

    checksum_size = None #if specified, _norm_checksum will require this length
    checksum_chars = None #if specified, _norm_checksum() will validate this

    #=====================================================
    #instance attrs
    #=====================================================
    checksum = None # stores checksum

    #=====================================================
    #init
    #=====================================================
    def __init__(self, checksum=None, use_defaults=False, **kwds):
        self.use_defaults = use_defaults
        super(GenericHandler, self).__init__(**kwds)
        self.checksum = self._norm_checksum(checksum)

    def _norm_checksum(self, checksum):
        """validates checksum keyword against class requirements,
        returns normalized version of checksum.
        """
        if checksum is None:
            return None

        # normalize to unicode
        if isinstance(checksum, bytes):
            checksum = checksum.decode('ascii')

        # check size
        cc = self.checksum_size
        if cc and len(checksum) != cc:
            raise ChecksumSizeError(self)

        # check charset
        cs = self.checksum_chars
        if cs:
            bad = set(checksum)
            bad.difference_update(cs)
            if bad:
                raise MalformedHashError(self, "invalid characters in checksum")

        return checksum

    def _invalid(self, option, reason):
        "construct error naming an invalid option"
        return InvalidOptionError(self, option, reason)

    #=====================================================
    #formatting interface
    #=====================================================
    @classmethod
    def identify(cls, hash):
        """check if hash (or configuration string) belongs to this scheme.

        this performs a full parse, so strings which carry the right
        prefix but contain malformed fields are not identified.
        """
        if not hash:
            return False
        try:
            cls.from_string(hash)
        except (ValueError, TypeError):
            return False
        return True

    @classmethod
    def from_string(cls, hash): #pragma: no cover
        """return parsed instance from hash/configuration string

        :raises ValueError: if hash is incorrectly formatted

        :returns:
            hash parsed into components,
            for formatting / calculating checksum.
        """
        raise NotImplementedError("%s must implement from_string()" % (cls,))

    def to_string(self): #pragma: no cover
        """render instance to hash or configuration string

        :returns:
            if :attr:`checksum` is set, should return full hash string.
            if not, should return the configuration string.
        """
        raise NotImplementedError("%s must implement to_string()" % (type(self),))

    def to_dict(self):
        "return dict of settings encoded in this instance"
        return dict((key, getattr(self, key)) for key in self.setting_kwds
                    if key not in self.generation_kwds)

    #=========================================================
    #'crypt-style' interface (default implementation)
    #=========================================================
    @classmethod
    def _norm_settings(cls, settings):
        """filter options passed to genconfig().

        option names are matched case-insensitively, ignoring underscores
        (so ``saltSize`` matches ``salt_size``); unknown options are ignored.
        """
        known = dict((key.replace("_", ""), key) for key in cls.setting_kwds)
        result = {}
        for key, value in settings.items():
            target = known.get(key.lower().replace("_", ""))
            if target is None:
                log.debug("%s: ignoring unknown option %r", cls.name, key)
                continue
            result[target] = value
        return result

    @classmethod
    def genconfig(cls, **settings):
        """generate configuration string from options.

        any option not specified is filled in with its default;
        if no salt is given, a random one is generated.

        :raises modcrypt.exc.InvalidOptionError:
            if any option is out of bounds or otherwise invalid.
        """
        settings = cls._norm_settings(settings)
        return cls(use_defaults=True, **settings).to_string()

    @classmethod
    def parseconfig(cls, config):
        """parse configuration or hash string into dict of options.

        :returns:
            dict of options (as accepted by :meth:`genconfig`),
            or ``False`` if the string doesn't belong to this scheme,
            or contains invalid settings.
        """
        try:
            self = cls.from_string(config)
        except (ValueError, TypeError) as err:
            log.debug("%s: parseconfig() rejected string: %s", cls.name, err)
            return False
        return self.to_dict()

    @classmethod
    def genhash(cls, secret, config):
        """calculate hash for secret using settings from configuration string.

        :arg secret: password as unicode or bytes (unicode is encoded to utf-8)
        :arg config: configuration or full hash string

        :returns:
            the full hash string; or ``"*0"`` / ``"*1"`` (see :func:`sentinel_for`)
            if the configuration is malformed, or the underlying primitive
            rejected it.
        """
        secret = to_bytes(secret, errname="secret")
        try:
            self = cls.from_string(_norm_hash_str(config, cls))
        except (ValueError, TypeError) as err:
            log.debug("%s: genhash() rejected config: %s", cls.name, err)
            return sentinel_for(config)
        try:
            self.checksum = self.calc_checksum(secret)
        except ValueError as err:
            log.debug("%s: genhash() failed: %s", cls.name, err)
            return sentinel_for(config)
        return self.to_string()

    def calc_checksum(self, secret): #pragma: no cover
        "given secret; calcuate and return encoded checksum portion of hash string, taking config from object state"
        raise NotImplementedError("%s must implement calc_checksum()" % (self.__class__,))

    #=========================================================
    #'application' interface (default implementation)
    #=========================================================
    @classmethod
    def hash(cls, secret, config=None, **settings):
        """hash secret.

        :arg config:
            either a configuration string (as returned by :meth:`genconfig`),
            or a mapping of options. options may also be passed as keywords.

        :raises modcrypt.exc.InvalidOptionError:
            if explicitly provided options are invalid.

        :returns:
            the hash string, or a sentinel if a configuration string was
            passed which can't be used (see :meth:`genhash`).
        """
        if config is None or isinstance(config, Mapping):
            if config:
                tmp = dict(config)
                tmp.update(settings)
                settings = tmp
            config = cls.genconfig(**settings)
        elif settings:
            raise TypeError("options can't be combined with a config string")
        return cls.genhash(secret, config)

    @classmethod
    def verify(cls, secret, hash):
        """verify secret against hash.

        the hash is recomputed via :meth:`genhash` using the settings it
        contains, and compared to the original.

        :returns:
            ``True`` if the secret matches; ``False`` otherwise,
            including when the hash is malformed, is only a configuration
            string, or no backend could compute it.
        """
        try:
            hash = _norm_hash_str(hash, cls)
            if cls.from_string(hash).checksum is None:
                return False
            result = cls.genhash(secret, hash)
        except (ValueError, TypeError) as err:
            log.debug("%s: verify() rejected hash: %s", cls.name, err)
            return False
        except MissingBackendError as err:
            log.warning("%s: verify() can't compute hash: %s", cls.name, err)
            return False
        return consteq(result, hash)

    #=========================================================
    #eoc
    #=========================================================

#=====================================================
#GenericHandler mixin classes
#=====================================================
class HasManyIdents(GenericHandler):
    """mixin for schemes with more than one prefix (e.g. bcrypt's ``2a`` and ``2y``).

    adds an ``ident`` setting, checked against :attr:`ident_values`;
    :attr:`ident_aliases` optionally maps alternate spellings onto those values.
    """

    #=========================================================
    #class attrs
    #=========================================================
    default_ident = None #: should be unicode
    ident_values = None #: should be tuple of unicode strings
    ident_aliases = None #: should be dict of unicode -> unicode

    #=========================================================
    #instance attrs
    #=========================================================
    ident = None

    #=========================================================
    #init
    #=========================================================
    def __init__(self, ident=None, **kwds):
        super(HasManyIdents, self).__init__(**kwds)
        self.ident = self._norm_ident(ident)

    def _norm_ident(self, ident):
        # fill in default identifier
        if ident is None:
            if not self.use_defaults:
                raise TypeError("no ident specified")
            ident = self.default_ident
            assert ident is not None, "class must define default_ident"

        # handle unicode
        if isinstance(ident, bytes):
            ident = ident.decode('ascii')

        # check if identifier is valid
        iv = self.ident_values
        if ident in iv:
            return ident

        # resolve aliases, and recheck against ident_values
        ia = self.ident_aliases
        if ia:
            value = ia.get(ident)
            if value in iv:
                return value

        # failure!
        raise self._invalid("ident", "must be one of %s" % ", ".join(iv))

    #=========================================================
    #eoc
    #=========================================================

class HasSalt(GenericHandler):
    """mixin adding the ``salt`` and ``salt_size`` settings.

    constraints come from :attr:`min_salt_size`, :attr:`max_salt_size`
    (``None`` for unbounded), :attr:`default_salt_size` and
    :attr:`salt_chars` (``None`` to allow any character).
    oversized salts are rejected, never truncated.

    generated salts are random bytes from :data:`modcrypt.rng.srandom`,
    encoded with :attr:`salt_engine` and cut to length.
    """
    #=========================================================
    #class attrs
    #=========================================================
    min_salt_size = None
    max_salt_size = None
    salt_chars = None
    salt_engine = h64

    @classproperty
    def default_salt_size(cls):
        return cls.max_salt_size

    #=========================================================
    #instance attrs
    #=========================================================
    salt = None

    #=========================================================
    #init
    #=========================================================
    def __init__(self, salt=None, salt_size=None, **kwds):
        super(HasSalt, self).__init__(**kwds)
        self.salt = self._norm_salt(salt, salt_size=salt_size)

    def _norm_salt_size(self, salt_size):
        if salt_size is None:
            return self.default_salt_size
        if not isinstance(salt_size, int) or isinstance(salt_size, bool):
            raise self._invalid("salt_size", "must be an integer")
        lower = self.min_salt_size or 0
        upper = self.max_salt_size
        if upper is None:
            if salt_size < lower:
                raise self._invalid("salt_size", "must be >= %d" % (lower,))
        elif not lower <= salt_size <= upper:
            raise self._invalid("salt_size", "must be between %d and %d" % (lower, upper))
        return salt_size

    def _norm_salt(self, salt, salt_size=None):
        """validate salt, or generate one if ``None`` and :attr:`use_defaults` is set.

        :raises TypeError: salt missing, and defaults not allowed.
        :raises modcrypt.exc.InvalidOptionError: salt has wrong type, size, or characters.
        """
        if salt is None:
            if not self.use_defaults:
                raise TypeError("no salt specified")
            return self._generate_salt(self._norm_salt_size(salt_size))

        if isinstance(salt, bytes):
            try:
                salt = salt.decode("ascii")
            except UnicodeDecodeError:
                raise self._invalid("salt", "must be ascii")
        elif not isinstance(salt, str):
            raise self._invalid("salt", "must be a string")

        allowed = self.salt_chars
        if allowed is not None and not set(salt).issubset(allowed):
            raise self._invalid("salt", "contains invalid characters")

        lower = self.min_salt_size
        upper = self.max_salt_size
        if lower and len(salt) < lower:
            raise self._invalid("salt", "requires %s %d chars" %
                                ("exactly" if lower == upper else ">=", lower))
        if upper is not None and len(salt) > upper:
            raise self._invalid("salt", "requires %s %d chars" %
                                ("exactly" if lower == upper else "<=", upper))
        return salt

    def _generate_salt(self, salt_size):
        raw = getrandbytes(srandom, (salt_size * 6 + 7) // 8)
        return self.salt_engine.encode_bytes(raw)[:salt_size]

    #=========================================================
    #eoc
    #=========================================================

class HasRounds(GenericHandler):
    """mixin adding the ``rounds`` setting.

    values must be integers within :attr:`min_rounds` ... :attr:`max_rounds`;
    :attr:`default_rounds` is used by :meth:`genconfig`.
    :attr:`rounds_cost` is ``"linear"`` or ``"log2"``, describing
    how rounds relates to the work performed.
    """
    #=========================================================
    #class attrs
    #=========================================================
    min_rounds = 0
    max_rounds = None
    default_rounds = None
    rounds_cost = "linear"

    #=========================================================
    #instance attrs
    #=========================================================
    rounds = None

    #=========================================================
    #init
    #=========================================================
    def __init__(self, rounds=None, **kwds):
        super(HasRounds, self).__init__(**kwds)
        self.rounds = self._norm_rounds(rounds)

    def _norm_rounds(self, rounds):
        "validate rounds, filling in :attr:`default_rounds` if allowed"
        if rounds is None:
            if not self.use_defaults:
                raise TypeError("no rounds specified")
            rounds = self.default_rounds
            assert rounds is not None, "class must define default_rounds"

        if not isinstance(rounds, int) or isinstance(rounds, bool):
            raise self._invalid("rounds", "must be an integer")
        if rounds < self.min_rounds:
            raise self._invalid("rounds", "must be >= %d" % (self.min_rounds,))
        if self.max_rounds and rounds > self.max_rounds:
            raise self._invalid("rounds", "must be <= %d" % (self.max_rounds,))
        return rounds

    #=========================================================
    #eoc
    #=========================================================

def _clear_backend(cls):
    "forget the backend chosen for a HasManyBackends subclass (used by unittests)"
    assert issubclass(cls, HasManyBackends) and cls is not HasManyBackends
    if cls._backend:
        del cls._backend
        del cls.calc_checksum

class HasManyBackends(GenericHandler):
    """mixin for schemes with more than one implementation.

    subclasses list backend names in :attr:`backends`, in order of
    preference, and for each name provide a ``_has_backend_<name>``
    flag (or classproperty) plus a ``_calc_checksum_<name>`` method.
    the first call to :meth:`calc_checksum` selects the first
    available backend and installs its method on the class.
    """

    #: backend names, most preferred first
    backends = None

    #: name of the selected backend, or None
    _backend = None

    @classmethod
    def get_backend(cls):
        """return name of active backend, selecting the default one if needed.

        :raises modcrypt.exc.MissingBackendError: no backend is available.
        """
        if not cls._backend:
            cls.set_backend()
        return cls._backend

    @classmethod
    def has_backend(cls, name="any"):
        """check if backend is available on this host.

        ``"any"`` and ``"default"`` check whether any backend is usable.

        :raises ValueError: unknown backend name.
        """
        if name in ("any", "default"):
            try:
                cls.set_backend()
            except MissingBackendError:
                return False
            return True
        if name not in cls.backends:
            raise ValueError("unknown backend: %r" % (name,))
        return getattr(cls, "_has_backend_" + name)

    @classmethod
    def set_backend(cls, name="any"):
        """select backend used by :meth:`calc_checksum`, returning its name.

        :arg name:
            a name from :attr:`backends`;
            ``"default"`` for the first available backend;
            or ``"any"`` (the default), which keeps the current backend
            if one was already selected, else acts like ``"default"``.

        :raises modcrypt.exc.MissingBackendError:
            the requested backend (or, for ``"any"`` / ``"default"``,
            every backend) is unavailable.
        """
        if name == "any" and cls._backend:
            return cls._backend
        if name in ("any", "default"):
            for name in cls.backends:
                if cls.has_backend(name):
                    break
            else:
                raise MissingBackendError("no %s backends available" % (cls.name,))
        elif not cls.has_backend(name):
            raise MissingBackendError("%s backend not available: %r" % (cls.name, name))
        cls.calc_checksum = getattr(cls, "_calc_checksum_" + name)
        cls._backend = name
        log.debug("%s: using %r backend", cls.name, name)
        return name

    def calc_checksum(self, secret):
        "placeholder replaced by the selected backend on first call"
        assert not self._backend, "set_backend() failed to replace placeholder"
        self.set_backend()
        return self.calc_checksum(secret)

#=========================================================
# eof
#=========================================================
