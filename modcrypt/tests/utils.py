"""helpers for modcrypt unittests"""
#=========================================================
#imports
#=========================================================
#core
import logging; log = logging.getLogger(__name__)
import os
import random
import tempfile
import unittest
import warnings
#site
#pkg
from modcrypt.exc import InvalidOptionError
from modcrypt.utils import classproperty, is_crypt_handler
#local
__all__ = [
    #util funcs
    'set_file', 'get_file',

    #unit testing
    'TestCase',
    'HandlerCase',
]

#: rng used to pick sample values; seeded so failures can be reproduced
rng = random.Random(os.environ.get("RANDOM_TEST_SEED") or 1234)

#=========================================================
#misc helpers
#=========================================================
def set_file(path, content):
    "set file to specified bytes"
    if isinstance(content, str):
        content = content.encode("utf-8")
    with open(path, "wb") as fh:
        fh.write(content)

def get_file(path):
    "read file as bytes"
    with open(path, "rb") as fh:
        return fh.read()

#=========================================================
#custom test base
#=========================================================
class TestCase(unittest.TestCase):
    """modcrypt-specific test case class

    this class adds a number of features to the standard TestCase...
    * common prefix for all test descriptions
    * resets warnings filter for every test
    * suite of methods for matching against warnings
    * helper for creating temp files which are removed after the test
    """
    #----------------------------------------------------------------
    # make it easy for test cases to add common prefix to shortDescription
    #----------------------------------------------------------------

    # string prepended to all tests in TestCase
    descriptionPrefix = None

    def shortDescription(self):
        "wrap shortDescription() method to prepend descriptionPrefix"
        desc = super(TestCase, self).shortDescription()
        prefix = self.descriptionPrefix
        if prefix:
            desc = "%s: %s" % (prefix, desc or str(self))
        return desc

    #----------------------------------------------------------------
    # skip base classes who have "__unittest_skip=True" set,
    # or whose names start with "_"
    #----------------------------------------------------------------
    @classproperty
    def __unittest_skip__(cls):
        name = cls.__name__
        return name.startswith("_") or \
               getattr(cls, "_%s__unittest_skip" % name, False)

    @classproperty
    def __test__(cls):
        # make pytest's collection mirror __unittest_skip__
        return not cls.__unittest_skip__

    # flag to skip *this* class
    __unittest_skip = True

    #----------------------------------------------------------------
    # reset warning filters before each test
    #----------------------------------------------------------------

    # flag to enable this feature
    resetWarningState = True

    def setUp(self):
        super(TestCase, self).setUp()
        self.setUpWarnings()

    def setUpWarnings(self):
        if self.resetWarningState:
            ctx = warnings.catch_warnings()
            ctx.__enter__()
            self.addCleanup(ctx.__exit__, None, None, None)
            warnings.resetwarnings()
            warnings.simplefilter("always")

    #----------------------------------------------------------------
    # warning helpers
    #----------------------------------------------------------------
    def assertWarning(self, warning, message_re=None, category=None, msg=None):
        "check if warning matches specified parameters"
        if hasattr(warning, "category"):
            # resolve WarningMessage -> Warning
            warning = warning.message
        if message_re:
            self.assertRegex(str(warning), message_re, msg)
        if category:
            self.assertIsInstance(warning, category, msg)

    def assertWarningList(self, wlist, desc=None, msg=None):
        """check that warning list (e.g. from catch_warnings) matches pattern

        *desc* is a list of warning categories, one per expected warning.
        """
        if desc is None:
            desc = []
        self.assertEqual(len(wlist), len(desc),
                         msg or "unexpected warnings: %r" % ([str(w.message) for w in wlist],))
        for warning, category in zip(wlist, desc):
            self.assertWarning(warning, category=category, msg=msg)
        del wlist[:]

    #----------------------------------------------------------------
    # function call helpers
    #----------------------------------------------------------------
    def assertFunctionResults(self, func, cases):
        """helper for running through function calls.

        cases should be a list of tuples,
        where the first element is the expected return value,
        and the remaining elements are passed to func as positional args.
        """
        for elem in cases:
            correct = elem[0]
            result = func(*elem[1:])
            self.assertEqual(result, correct, "error for case %r:" % (elem[1:],))

    #----------------------------------------------------------------
    # file helpers
    #----------------------------------------------------------------
    def mktemp(self, *args, **kwds):
        "create temp file that's cleaned up at end of test"
        fd, path = tempfile.mkstemp(*args, **kwds)
        os.close(fd)
        self.addCleanup(os.remove, path)
        return path

#=========================================================
#other unittest helpers
#=========================================================
class HandlerCase(TestCase):
    """base class for testing password hash handlers (esp modcrypt.utils.handlers subclasses)

    In order to use this to test a handler,
    create a subclass with all the appropriate attributes
    filled in, and run the subclass via unittest or pytest.
    """
    #=========================================================
    # attrs to be filled in by subclass for testing specific handler
    #=========================================================

    #--------------------------------------------------
    # handler setup
    #--------------------------------------------------

    # specify handler object here (required)
    handler = None

    # options passed to every hash()/genconfig() call made by the
    # generic tests; used to keep expensive hashes fast.
    hash_options = {}

    #--------------------------------------------------
    # test vectors
    #--------------------------------------------------

    # list of (secret, hash) tuples which are known to be correct
    known_correct_hashes = []

    # list of (config, secret, hash) tuples are known to be correct
    known_correct_configs = []

    # strings with the right prefix, but some invalid field;
    # these must be rejected by identify(), verify() and genhash()
    known_malformed_hashes = []

    # list of (handler name, hash) pairs for other algorithm's hashes that
    # handler shouldn't identify as belonging to it
    # (if handler name in list, that entry will be skipped)
    known_other_hashes = [
        ('des_crypt', '6f8c114b58f2c'),
        ('md5_crypt', '$1$dOHYPKoP$tnxS1T8Q6VVn3kpV8cN6o.'),
        ('sha512_crypt', "$6$rounds=123456$asaltof16chars..$BtCwjqMJGx5hrJhZywW"
         "vt0RLE8uZ4oPwcelCjmw2kSYu.Ec6ycULevoBK25fs2xXgMNrCzIMVcgEJAstJeonj1"),
        ('bcrypt', '$2a$05$CCCCCCCCCCCCCCCCCCCCC.E5YPO9kmyuRGyh0XouQYb4YMJKvyOeW'),
        ('pbkdf2', '$pbkdf2$1212$OB.dtnSEXZK8U5cgxU/GYQ$y5LKPOplRmok7CZp/aqVDVg8zGI'),
    ]

    # passwords used to test basic hash behavior - generally
    # don't need to be overidden.
    stock_passwords = [
        "test",
        "€¥$",
        b'\xe2\x82\xac\xc2\xa5$',
    ]

    #--------------------------------------------------
    # option flags
    #--------------------------------------------------

    # maximum number of bytes which hash will include in digest.
    # ``None`` (the default) indicates the hash uses ALL of the password.
    secret_size = None

    #=========================================================
    # alg interface helpers - allows subclass to overide how
    # default tests invoke the handler
    #=========================================================
    def do_hash(self, secret, **kwds):
        "call handler's hash method with specified options"
        for key, value in self.hash_options.items():
            kwds.setdefault(key, value)
        return self.handler.hash(secret, **kwds)

    def do_verify(self, secret, hash):
        "call handler's verify method"
        return self.handler.verify(secret, hash)

    def do_identify(self, hash):
        "call handler's identify method"
        return self.handler.identify(hash)

    def do_genconfig(self, **kwds):
        "call handler's genconfig method with specified options"
        for key, value in self.hash_options.items():
            kwds.setdefault(key, value)
        return self.handler.genconfig(**kwds)

    def do_genhash(self, secret, config):
        "call handler's genhash method"
        return self.handler.genhash(secret, config)

    #=========================================================
    # support
    #=========================================================
    @classmethod
    def iter_known_hashes(cls):
        "iterate through known (secret, hash) pairs"
        for secret, hash in cls.known_correct_hashes:
            yield secret, hash
        for config, secret, hash in cls.known_correct_configs:
            yield secret, hash

    def get_sample_hash(self):
        "test random sample secret/hash pair"
        known = list(self.iter_known_hashes())
        return rng.choice(known)

    def check_verify(self, secret, hash, msg=None, negate=False):
        "helper to check verify() outcome"
        result = self.do_verify(secret, hash)
        self.assertTrue(result is True or result is False,
                        "verify() returned non-boolean value: %r" % (result,))
        if negate:
            if not result:
                return
            if not msg:
                msg = ("verify incorrectly returned True: secret=%r, hash=%r" %
                       (secret, hash))
            raise self.failureException(msg)
        else:
            if result:
                return
            if not msg:
                msg = "verify failed: secret=%r, hash=%r" % (secret, hash)
            raise self.failureException(msg)

    def check_returned_native_str(self, result, func_name):
        self.assertIsInstance(result, str,
            "%s() failed to return native string: %r" % (func_name, result,))

    def check_invalid_option(self, option, **kwds):
        "check genconfig() raises InvalidOptionError naming option"
        with self.assertRaises(InvalidOptionError) as cm:
            self.do_genconfig(**kwds)
        self.assertEqual(cm.exception.option, option)
        self.assertEqual(cm.exception.scheme, self.handler.name)

    def has_setting(self, name):
        return name in self.handler.setting_kwds

    def use_backend(self, name):
        "switch handler to backend for the duration of the test"
        handler = self.handler
        self.addCleanup(handler.set_backend, handler.get_backend())
        handler.set_backend(name)

    #=========================================================
    # internal class attrs
    #=========================================================
    __unittest_skip = True

    @property
    def descriptionPrefix(self):
        handler = self.handler
        name = handler.name
        if hasattr(handler, "get_backend"):
            name += " (%s backend)" % (handler.get_backend(),)
        return name

    #=========================================================
    # basic tests
    #=========================================================
    def test_01_required_attributes(self):
        "validate required attributes"
        handler = self.handler
        self.assertTrue(is_crypt_handler(handler),
                        "handler doesn't implement password hash api")
        self.assertIsInstance(handler.name, str)
        self.assertEqual(handler.name, handler.name.lower())
        self.assertIsInstance(handler.setting_kwds, tuple)
        for key in handler.generation_kwds:
            self.assertIn(key, handler.setting_kwds)

    def test_02_config_workflow(self):
        """test basic config-string workflow

        this tests that genconfig() returns the expected types,
        and that identify(), parseconfig() and genhash() handle the result correctly.
        """
        config = self.do_genconfig()
        self.check_returned_native_str(config, "genconfig")

        # genhash() should always accept genconfig()'s output
        result = self.do_genhash('stub', config)
        self.check_returned_native_str(result, "genhash")
        self.assertNotIn(result, ("*0", "*1"))

        # verify() should never accept config strings
        self.assertFalse(self.do_verify('stub', config))

        # identify() should positively identify config strings
        self.assertTrue(self.do_identify(config),
            "identify() failed to identify genconfig() output: %r" %
            (config,))

        # parseconfig() should return same settings for config & hash
        settings = self.handler.parseconfig(config)
        self.assertIsInstance(settings, dict)
        self.assertEqual(self.handler.parseconfig(result), settings)

    def test_03_hash_workflow(self):
        """test basic hash-string workflow.

        this tests that hash()'s results are accepted
        by verify() and identify(), and regenerated correctly by genhash().
        the test is run against a couple of different stock passwords.
        """
        wrong_secret = 'stub'
        for secret in self.stock_passwords:

            # hash() should generate native str hash
            result = self.do_hash(secret)
            self.check_returned_native_str(result, "hash")

            # verify() should work only against secret
            self.check_verify(secret, result)
            self.check_verify(wrong_secret, result, negate=True)

            # genhash() should reproduce original hash
            other = self.do_genhash(secret, result)
            self.check_returned_native_str(other, "genhash")
            self.assertEqual(other, result, "genhash() failed to reproduce "
                             "hash: secret=%r hash=%r: result=%r" %
                             (secret, result, other))

            # genhash() should NOT reproduce original hash for wrong password
            other = self.do_genhash(wrong_secret, result)
            self.assertNotEqual(other, result, "genhash() duplicated "
                             "hash: secret=%r hash=%r wrong_secret=%r: result=%r" %
                             (secret, result, wrong_secret, other))

            # identify() should positively identify hash
            self.assertTrue(self.do_identify(result))

    def test_04_hash_types(self):
        "test hashes can be bytes or unicode; secrets must be strings"
        # secret can be unicode or utf-8 bytes
        result = self.do_hash("stub")
        self.check_verify(b"stub", result)

        # hash can be ascii bytes
        self.check_verify("stub", result.encode("ascii"))
        self.assertTrue(self.do_identify(result.encode("ascii")))
        self.assertEqual(self.do_genhash("stub", result.encode("ascii")), result)

        # non-string secrets are a programming error
        self.assertRaises(TypeError, self.do_genhash, 1, result)
        self.assertRaises(TypeError, self.do_genhash, None, result)
        self.assertRaises(TypeError, self.do_hash, None)

        # but verify() reports them (and non-string hashes) as mismatches
        self.assertFalse(self.do_verify(None, result))
        self.assertFalse(self.do_verify("stub", None))
        self.assertFalse(self.do_verify("stub", 1))
        self.assertFalse(self.do_identify(None))

    def test_05_backends(self):
        "test all available backends agree on known hashes"
        handler = self.handler
        if not hasattr(handler, "backends"):
            raise self.skipTest("handler only has one backend")
        secret, hash = self.get_sample_hash()
        tested = 0
        for name in handler.backends:
            if not handler.has_backend(name):
                log.info("%s: %s backend not available", handler.name, name)
                continue
            self.use_backend(name)
            self.assertEqual(handler.get_backend(), name)
            self.assertEqual(self.do_genhash(secret, hash), hash,
                             "%s backend disagrees on %r" % (name, hash))
            tested += 1
        self.assertTrue(tested, "no backends available")

    def test_06_hash_with_config(self):
        "test hash() accepts config strings & option mappings"
        config = self.do_genconfig()
        result = self.handler.hash("stub", config)
        self.assertEqual(self.do_genhash("stub", config), result)

        # options can't be combined with a config string
        self.assertRaises(TypeError, self.handler.hash, "stub", config, salt=None)

        # mapping of options merged with keywords
        result = self.handler.hash("stub", dict(self.hash_options))
        self.check_verify("stub", result)

    #=========================================================
    # salts
    #=========================================================
    def require_salt(self):
        if not self.has_setting("salt"):
            raise self.skipTest("handler doesn't have salt")

    def test_10_salt_chars(self):
        "test genconfig() rejects salts with invalid characters"
        self.require_salt()
        handler = self.handler
        size = max(handler.min_salt_size or 0, 1)
        self.check_invalid_option("salt", salt="!" * size)
        self.check_invalid_option("salt", salt="\x00" * size)
        self.check_invalid_option("salt", salt="€" * size)
        self.check_invalid_option("salt", salt=1234)

    def test_11_unique_salt(self):
        "test hash() generates unique salts"
        self.require_salt()
        # NOTE: des_crypt only has 4096 salts, so a few collisions are expected
        seen = set(self.handler.parseconfig(self.do_genconfig())["salt"]
                   for _ in range(10))
        self.assertGreater(len(seen), 5)

    def test_12_min_salt_size(self):
        "test genconfig() rejects salts below min_salt_size"
        self.require_salt()
        handler = self.handler
        char = handler.salt_chars[0]
        mn = handler.min_salt_size
        config = self.do_genconfig(salt=char * mn)
        self.assertEqual(handler.parseconfig(config)["salt"], char * mn)
        if mn > 0:
            self.check_invalid_option("salt", salt=char * (mn - 1))

    def test_13_max_salt_size(self):
        "test genconfig() rejects salts above max_salt_size, never truncating"
        self.require_salt()
        handler = self.handler
        char = handler.salt_chars[0]
        mx = handler.max_salt_size
        config = self.do_genconfig(salt=char * mx)
        self.assertEqual(handler.parseconfig(config)["salt"], char * mx)
        self.check_invalid_option("salt", salt=char * (mx + 1))

    def test_14_salt_size(self):
        "test genconfig() validates salt_size"
        self.require_salt()
        if not self.has_setting("salt_size"):
            # salt_size is silently dropped by handlers which don't accept it
            config = self.do_genconfig(salt_size=-1)
            self.assertTrue(self.do_identify(config))
            raise self.skipTest("handler doesn't have salt_size")
        self.check_invalid_option("salt_size", salt_size=-1)
        self.check_invalid_option("salt_size", salt_size="8")
        self.check_invalid_option("salt_size", salt_size=1 << 20)

    #=========================================================
    # rounds
    #=========================================================
    def require_rounds(self):
        if not self.has_setting("rounds"):
            raise self.skipTest("handler doesn't have rounds")

    def test_20_rounds_attributes(self):
        "validate rounds attributes"
        self.require_rounds()
        handler = self.handler
        self.assertIn(handler.rounds_cost, ("linear", "log2"))
        self.assertGreaterEqual(handler.min_rounds, 0)
        self.assertGreaterEqual(handler.max_rounds, handler.min_rounds)
        self.assertGreaterEqual(handler.default_rounds, handler.min_rounds)
        self.assertLessEqual(handler.default_rounds, handler.max_rounds)

    def test_21_rounds_limits(self):
        "test genconfig() rejects rounds outside of limits, never clamping"
        self.require_rounds()
        handler = self.handler
        self.check_invalid_option("rounds", rounds=handler.min_rounds - 1)
        self.check_invalid_option("rounds", rounds=handler.max_rounds + 1)
        self.check_invalid_option("rounds", rounds=str(handler.min_rounds))
        self.check_invalid_option("rounds", rounds=float(handler.min_rounds))
        self.check_invalid_option("rounds", rounds=True)

    def test_22_rounds_default(self):
        "test genconfig() fills in default rounds"
        self.require_rounds()
        handler = self.handler
        config = handler.genconfig()
        self.assertEqual(handler.parseconfig(config)["rounds"], handler.default_rounds)

    #=========================================================
    # idents
    #=========================================================
    def test_30_HasManyIdents(self):
        "validate HasManyIdents configuration"
        handler = self.handler
        if not self.has_setting("ident"):
            raise self.skipTest("handler doesn't derive from HasManyIdents")

        # check settings
        self.assertIn(handler.default_ident, handler.ident_values)

        # each ident should be preserved by genconfig & parseconfig
        for ident in handler.ident_values:
            config = self.do_genconfig(ident=ident)
            self.assertEqual(handler.parseconfig(config)["ident"], ident)

        # unknown idents should be rejected
        self.check_invalid_option("ident", ident="xXx")

    #=========================================================
    # sentinels & option handling
    #=========================================================
    def test_40_sentinels(self):
        "test genhash() toggles the failure sentinels"
        for secret in ["", "stub"]:
            self.assertEqual(self.do_genhash(secret, "*0"), "*1")
            self.assertEqual(self.do_genhash(secret, "*1"), "*0")
            self.assertEqual(self.handler.hash(secret, "*0"), "*1")
            self.assertEqual(self.handler.hash(secret, "*1"), "*0")
            self.assertFalse(self.do_verify(secret, "*0"))
            self.assertFalse(self.do_verify(secret, "*1"))
        self.assertFalse(self.do_identify("*0"))
        self.assertFalse(self.do_identify("*1"))
        self.assertIs(self.handler.parseconfig("*0"), False)

    def test_41_parseconfig(self):
        "test parseconfig() returns settings accepted by genconfig()"
        handler = self.handler
        for secret, hash in self.iter_known_hashes():
            settings = handler.parseconfig(hash)
            self.assertIsInstance(settings, dict)
            for key in settings:
                self.assertIn(key, handler.setting_kwds)
                self.assertNotIn(key, handler.generation_kwds)
            config = handler.genconfig(**settings)
            self.assertEqual(handler.parseconfig(config), settings)
            self.assertEqual(self.do_genhash(secret, config), hash)

    def test_42_unknown_options(self):
        "test genconfig() ignores unknown options"
        config = self.do_genconfig(not_an_option=123)
        self.assertTrue(self.do_identify(config))

    #=========================================================
    # passwords
    #=========================================================
    def test_60_secret_size(self):
        "test password size limits"
        sc = self.secret_size
        base = "too many secrets" #16 chars
        alt = "x" #char that's not in base string
        if sc is not None:
            # hash only counts the first <sc> bytes
            secret = (base * (1+sc//16))[:sc]
            hash = self.do_hash(secret)
            self.check_verify(secret, hash)
            self.check_verify(secret + alt, hash)
            self.check_verify(secret[:-1] + alt, hash, negate=True)
        else:
            # hash counts all characters
            secret = base * 4
            hash = self.do_hash(secret)
            self.check_verify(secret, hash)
            self.check_verify(secret[:-1] + alt, hash, negate=True)

    def test_61_secret_case_sensitive(self):
        "test password case sensitivity"
        hash = self.do_hash("test")
        self.check_verify("test", hash)
        self.check_verify("TEST", hash, negate=True)

    #=========================================================
    # known vectors
    #=========================================================
    def test_70_hashes(self):
        "test known hashes"
        # sanity check
        self.assertTrue(self.known_correct_hashes or self.known_correct_configs,
                        "test must set at least one of 'known_correct_hashes' "
                        "or 'known_correct_configs'")

        # run through known secret/hash pairs
        for secret, hash in self.iter_known_hashes():

            # hash should be positively identified by handler
            self.assertTrue(self.do_identify(hash),
                "identify() failed to identify hash: %r" % (hash,))

            # secret should verify successfully against hash
            self.check_verify(secret, hash, "verify() of known hash failed: "
                              "secret=%r, hash=%r" % (secret, hash))

            # genhash() should reproduce same hash
            result = self.do_genhash(secret, hash)
            self.check_returned_native_str(result, "genhash")
            self.assertEqual(result, hash,  "genhash() failed to reproduce "
                "known hash: secret=%r, hash=%r: result=%r" %
                (secret, hash, result))

    def test_72_configs(self):
        "test known config strings"
        if not self.known_correct_configs:
            raise self.skipTest("no config strings provided")

        for config, secret, hash in self.known_correct_configs:

            # config should be positively identified by handler
            self.assertTrue(self.do_identify(config),
                "identify() failed to identify known config string: %r" %
                (config,))

            # verify() should reject config strings.
            self.assertFalse(self.do_verify(secret, config),
                "verify() failed to reject config string: %r" % (config,))

            # genhash() should reproduce hash from config.
            result = self.do_genhash(secret, config)
            self.assertEqual(result, hash,  "genhash() failed to reproduce "
                "known hash from config: secret=%r, config=%r, hash=%r: "
                "result=%r" % (secret, config, hash, result))

    def test_74_malformed(self):
        "test known malformed strings"
        if not self.known_malformed_hashes:
            raise self.skipTest("no malformed hashes provided")
        for hash in self.known_malformed_hashes:

            # identify() should reject these
            self.assertFalse(self.do_identify(hash),
                "identify() incorrectly identified malformed hash: %r" % (hash,))

            # verify() should report a mismatch, not raise
            self.assertFalse(self.do_verify('stub', hash),
                "verify() accepted malformed hash: %r" % (hash,))

            # genhash() should return the failure sentinel
            self.assertEqual(self.do_genhash('stub', hash), "*0",
                "genhash() failed to reject malformed hash: %r" % (hash,))

            # parseconfig() should reject it too
            self.assertIs(self.handler.parseconfig(hash), False)

    def test_75_foreign(self):
        "test known foreign hashes"
        for name, hash in self.known_other_hashes:
            if name == self.handler.name:
                # identify should accept these
                self.assertTrue(self.do_identify(hash),
                    "identify() failed to identify known hash: %r" % (hash,))
            else:
                # identify should reject these
                self.assertFalse(self.do_identify(hash),
                    "identify() incorrectly identified hash belonging to "
                    "%s: %r" % (name, hash))
                self.assertFalse(self.do_verify('stub', hash))
                self.assertEqual(self.do_genhash('stub', hash), "*0")

    #=========================================================
    #eoc
    #=========================================================

#=========================================================
#EOF
#=========================================================
