"""modcrypt.context - Context implementation"""
#=========================================================
#imports
#=========================================================
#core
from configparser import ConfigParser
from io import StringIO
import logging; log = logging.getLogger(__name__)
from warnings import warn
#site
#libs
from modcrypt.exc import ExpectedTypeError, ModcryptConfigWarning
from modcrypt.registry import get_crypt_handler
from modcrypt.utils import is_crypt_handler, splitcomma, to_unicode
#pkg
#local
__all__ = [
    'Context',
]

#=========================================================
# support
#=========================================================

# dict containing funcs used to coerce INI strings to correct type
# for scheme option keys.
_coerce_scheme_options = dict(
    rounds=int,
    salt_size=int,
)

# set of options which aren't allowed to be set via INI files
_forbidden_scheme_options = set(["salt"])
    # 'salt' - not allowed since a fixed salt would defeat the purpose.

#=========================================================
# context
#=========================================================
class Context(object):
    """Helper for hashing & verifying passwords using multiple configurations.

    A context maps short aliases (``"bcrypt"``, ``"pbkdf2"``, ...) to hash
    handlers, and holds an ordered list of configurations, each pairing
    an alias with a set of options for that handler.

    * :meth:`hash` always uses the first configuration added.
    * :meth:`verify` picks whichever configuration recognizes the hash.
    * :meth:`needs_update` reports hashes that don't match the first
      configuration's settings, so applications can rehash them on login.

    usage example::

        >>> from modcrypt import Context
        >>> context = Context()
        >>> context.add_config("bcrypt", rounds=10).add_config("md5crypt")
        >>> hash = context.hash("password")
        >>> context.verify("password", hash)
        True

    :raises RuntimeError:
        if an alias isn't registered, or doesn't resolve to a handler;
        and by :meth:`hash` and :meth:`verify` if no configurations were added.
    """
    #===================================================================
    # class attrs
    #===================================================================

    #: aliases known to every new context, mapped to registry names
    default_aliases = {
        "bcrypt": "bcrypt",
        "bsdicrypt": "bsdi_crypt",
        "descrypt": "des_crypt",
        "md5crypt": "md5_crypt",
        "pbkdf2": "pbkdf2",
        "portable": "phpass",
        "sha1crypt": "sha1_crypt",
        "sha256crypt": "sha256_crypt",
        "sha512crypt": "sha512_crypt",
    }

    #===================================================================
    # secondary constructors
    #===================================================================
    @classmethod
    def from_string(cls, source, section="modcrypt", encoding="utf-8"):
        """create new Context instance from an INI-formatted string.

        :arg source:
            bytes/unicode string containing INI-formatted content.

        :param section:
            option name of section to read from, defaults to ``"modcrypt"``.

        :arg encoding:
            optional encoding used when source is bytes, defaults to ``"utf-8"``.

        usage example::

            >>> from modcrypt.context import Context
            >>> context = Context.from_string('''
            ... [modcrypt]
            ... schemes = sha512crypt, md5crypt
            ... sha512crypt__rounds = 80000
            ... ''')
        """
        if not isinstance(source, (str, bytes)):
            raise ExpectedTypeError(source, "unicode or bytes", "source")
        self = cls()
        self.load(source, section=section, encoding=encoding)
        return self

    @classmethod
    def from_path(cls, path, section="modcrypt", encoding="utf-8"):
        """create new Context instance from an INI-formatted file.

        this functions exactly the same as :meth:`from_string`,
        except that it loads from a local file.
        """
        self = cls()
        self.load_path(path, section=section, encoding=encoding)
        return self

    #===================================================================
    # init
    #===================================================================
    def __init__(self):
        self._class_map = dict(self.default_aliases)
        # alias -> (handler, options), in the order they were added
        self._configs = {}

    def __repr__(self):
        return "<Context schemes=%r>" % (self.schemes(),)

    #===================================================================
    # loading configuration
    #===================================================================
    @staticmethod
    def _parse_ini_stream(stream, section, filename):
        "helper read INI from stream, extract modcrypt section as dict"
        p = ConfigParser(interpolation=None)
        p.read_file(stream, filename)
        return dict(p.items(section))

    def load_path(self, path, section="modcrypt", encoding="utf-8"):
        """load configurations from a local INI file.

        This function is a wrapper for :meth:`load`, which
        reads the configuration from the file at *path*,
        instead of an in-memory source.
        """
        with open(path, "rt", encoding=encoding) as stream:
            source = self._parse_ini_stream(stream, section, path)
        return self.load(source)

    def load(self, source, section="modcrypt", encoding="utf-8"):
        """add configurations from an INI string, or a dict of the same keys.

        the following keys are recognized:

        ``schemes``
            comma-separated list of aliases; a configuration is added
            for each one, in order.

        :samp:`{alias}__{option}`
            option to pass to that alias' handler. ``rounds`` and
            ``salt_size`` values are converted to integers.

        :raises ValueError:
            if an option is invalid for its handler,
            or a fixed salt is configured.

        :returns: the context, for chaining.
        """
        if isinstance(source, (str, bytes)):
            source = to_unicode(source, encoding, errname="source")
            source = self._parse_ini_stream(StringIO(source), section, "<string>")
        elif not hasattr(source, "items"):
            raise ExpectedTypeError(source, "string or dict", "source")

        schemes = source.get("schemes") or []
        if isinstance(schemes, str):
            schemes = splitcomma(schemes)

        options = dict((alias, {}) for alias in schemes)
        for key, value in source.items():
            if key == "schemes":
                continue
            alias, sep, option = key.partition("__")
            if not sep or not option:
                warn("unknown key in Context configuration: %r" % (key,),
                     ModcryptConfigWarning)
                continue
            if alias not in options:
                warn("options given for scheme %r, which isn't listed in schemes" % (alias,),
                     ModcryptConfigWarning)
                continue
            if option in _forbidden_scheme_options:
                raise ValueError("%r option not allowed in Context configuration" % (option,))
            if isinstance(value, str) and option in _coerce_scheme_options:
                value = _coerce_scheme_options[option](value)
            options[alias][option] = value

        for alias in schemes:
            self.add_config(alias, **options[alias])
        return self

    #===================================================================
    # configuration
    #===================================================================
    def register_class(self, alias, handler):
        """register alias for a hash handler.

        :arg alias: case-insensitive alias to register.
        :arg handler: handler object, or name of a handler in :mod:`modcrypt.registry`.

        :returns: the context, for chaining.
        """
        self._class_map[alias.lower()] = handler
        return self

    def _get_handler(self, alias):
        "resolve alias to handler"
        alias = alias.lower()
        handler = self._class_map.get(alias)
        if handler is None:
            raise RuntimeError("Requested class alias %r is not registered" % (alias,))
        if isinstance(handler, str):
            name = handler
            handler = get_crypt_handler(name, None)
            if handler is None:
                raise RuntimeError("Failed loading handler %r for alias %r" % (name, alias))
        if not is_crypt_handler(handler):
            raise RuntimeError("Class alias %r does not implement the password hash interface" % (alias,))
        return handler

    def add_config(self, alias, **options):
        """add configuration for alias.

        the options are checked right away (by generating a configuration
        string from them), so invalid options are reported here,
        rather than on the first call to :meth:`hash`.
        adding an alias a second time replaces its options,
        but keeps its position.

        :raises RuntimeError: if the alias can't be resolved to a handler.
        :raises modcrypt.exc.InvalidOptionError: if the options are invalid.

        :returns: the context, for chaining.
        """
        handler = self._get_handler(alias)
        handler.genconfig(**options)
        self._configs[alias.lower()] = (handler, options)
        log.debug("added %r configuration: %r %r", alias, handler.name, options)
        return self

    def schemes(self):
        "return list of aliases which have been configured, default first"
        return list(self._configs)

    def _get_default_config(self):
        for config in self._configs.values():
            return config
        raise RuntimeError("There are no configurations defined")

    def _get_config_from_hash(self, hash):
        "return (alias, handler, options) of first config that recognizes hash, or None"
        if not self._configs:
            raise RuntimeError("There are no configurations defined")
        for alias, (handler, options) in self._configs.items():
            if handler.parseconfig(hash) is not False:
                return alias, handler, options
        return None

    def to_string(self, section="modcrypt"):
        "serialize configurations as INI-formatted string (inverse of :meth:`from_string`)"
        p = ConfigParser(interpolation=None)
        p.add_section(section)
        p.set(section, "schemes", ", ".join(self._configs))
        for alias, (handler, options) in self._configs.items():
            for key, value in sorted(options.items()):
                p.set(section, "%s__%s" % (alias, key), str(value))
        buf = StringIO()
        p.write(buf)
        return buf.getvalue()

    #===================================================================
    # password hash api
    #===================================================================
    def hash(self, secret):
        "hash secret using the default (first) configuration"
        handler, options = self._get_default_config()
        return handler.hash(secret, **options)

    def identify(self, hash, required=False):
        """return alias of the configuration which recognizes hash.

        :raises RuntimeError:
            if no configurations were added; or if *required* is set,
            and no configuration recognizes the hash.

        :returns: alias, or ``None``.
        """
        record = self._get_config_from_hash(hash)
        if record:
            return record[0]
        if required:
            raise RuntimeError("Hash does not match any registered configuration")
        return None

    def verify(self, secret, hash):
        """verify secret against hash, using whichever configuration recognizes it.

        :raises RuntimeError: if no configurations were added.

        :returns:
            ``True`` if the secret matches; ``False`` otherwise,
            including when no configuration recognizes the hash.
        """
        record = self._get_config_from_hash(hash)
        if record is None:
            log.debug("verify(): hash doesn't match any configuration")
            return False
        return record[1].verify(secret, hash)

    def needs_update(self, hash):
        """check if hash should be replaced using the default configuration.

        this is the case if the hash belongs to another scheme, or any of
        its settings (ignoring the salt) differ from the default configuration.

        :raises RuntimeError: if no configurations were added.
        """
        handler, options = self._get_default_config()
        hash_options = handler.parseconfig(hash)
        default_options = handler.parseconfig(handler.genconfig(**options))
        if not hash_options or not default_options:
            return True
        hash_options.pop("salt", None)
        default_options.pop("salt", None)
        return hash_options != default_options

    #===================================================================
    # eoc
    #===================================================================

#=========================================================
# eof
#=========================================================
