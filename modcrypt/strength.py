"""modcrypt.strength - password strength estimators

these are simple heuristics, based on counting the classes of characters
a password contains; they share no state with the hashing code.

* :class:`Nist` - entropy estimate from NIST SP 800-63 appendix A.
* :class:`Wolfram` - additive score mirroring the rules used by
  Wolfram Alpha's password strength calculator.

usage example::

    >>> from modcrypt.strength import Strength
    >>> Strength().calculate("correct horse")
    25
"""
#=========================================================
#imports
#=========================================================
#core
import re
import logging; log = logging.getLogger(__name__)
#site
#libs
from modcrypt.exc import ExpectedTypeError
from modcrypt.utils import to_unicode
#pkg
#local
__all__ = [
    "Strength",
    "Adapter",
    "Nist",
    "Wolfram",
]

#=========================================================
#token classes
#=========================================================
CLASS_LETTER = "letter"
CLASS_UPPER = "upper"
CLASS_LOWER = "lower"
CLASS_NUMBER = "number"
CLASS_SYMBOL = "symbol"

def classify(char):
    "return class of a single character; anything outside ascii letters & digits is a symbol"
    if "0" <= char <= "9":
        return CLASS_NUMBER
    elif "A" <= char <= "Z":
        return CLASS_UPPER
    elif "a" <= char <= "z":
        return CLASS_LOWER
    else:
        return CLASS_SYMBOL

#=========================================================
#adapters
#=========================================================
class Adapter(object):
    """base class for strength estimators.

    subclasses implement :meth:`check`, which is given a password
    already analyzed into ``self``'s token tables by :meth:`analyze`.
    """

    #: the password last analyzed
    password = None

    def analyze(self, password):
        "reset token tables for password"
        self.password = password
        self.length = len(password)
        self.tokens = {}
        self.token_counts = dict.fromkeys((CLASS_UPPER, CLASS_LOWER,
                                           CLASS_NUMBER, CLASS_SYMBOL), 0)
        self.token_indices = dict((key, []) for key in self.token_counts)
        for index, token in enumerate(password):
            token_class = classify(token)
            self.token_counts[token_class] += 1
            self.token_indices[token_class].append(index)
            self.tokens[token] = self.tokens.get(token, 0) + 1

    def get_class_count(self, token_class):
        "return number of characters belonging to class"
        if token_class == CLASS_LETTER:
            return self.token_counts[CLASS_UPPER] + self.token_counts[CLASS_LOWER]
        return self.token_counts[token_class]

    def get_class_indices(self, token_class):
        "return sorted positions of characters belonging to class"
        if token_class == CLASS_LETTER:
            return sorted(self.token_indices[CLASS_UPPER] + self.token_indices[CLASS_LOWER])
        return list(self.token_indices[token_class])

    def check(self, password): #pragma: no cover
        "return score for password"
        raise NotImplementedError("%s must implement check()" % (type(self),))

class Nist(Adapter):
    """entropy estimate from NIST SP 800-63 appendix A.

    the first character counts 4 bits, the next 7 count 2 bits each,
    characters 9 through 20 count 1.5 bits, and the rest 1 bit each.
    a 6 bit bonus is given for mixing upper case, lower case,
    and non-letter characters. fractional results are truncated.
    """

    def check(self, password):
        self.analyze(password)
        length = self.length
        score = 0
        if length > 0:
            score += 4
        if length > 1:
            score += min(length - 1, 7) * 2
        if length > 8:
            score += min(length - 8, 12) * 1.5
        if length > 20:
            score += length - 20
        if self.get_class_count(CLASS_UPPER) and self.get_class_count(CLASS_LOWER):
            if self.get_class_count(CLASS_NUMBER) or self.get_class_count(CLASS_SYMBOL):
                score += 6
        return int(score)

#: patterns used to find runs of a single class
_consecutive_patterns = {
    CLASS_UPPER: re.compile("[A-Z]{2,}"),
    CLASS_LOWER: re.compile("[a-z]{2,}"),
    CLASS_NUMBER: re.compile("[0-9]{2,}"),
}

class Wolfram(Adapter):
    """additive score based on the rules of Wolfram Alpha's password strength calculator.

    bonuses are given for length, letters of each case, numbers, symbols,
    and numbers or symbols in the middle of the password; penalties for
    letter-only or number-only passwords, repeated characters, runs of
    the same class, and ascending sequences (``abc``, ``123``).

    .. note::

        Wolfram's calculator only rewards numbers in the middle of the
        password; this estimator rewards symbols too, as the rule's name
        implies. scores won't always match the calculator's.
    """

    def check(self, password):
        self.analyze(password)
        length = self.length
        score = self._base_score()
        score += self._letter_score()
        score += self._number_score()
        score += self._symbol_score()
        score += self._middle_score()

        if length and (self.get_class_count(CLASS_LETTER) == length or
                       self.get_class_count(CLASS_NUMBER) == length):
            score -= length

        score += self._repeat_score()

        if length > 2:
            score += self._consecutive_score(CLASS_UPPER)
            score += self._consecutive_score(CLASS_LOWER)
            score += self._consecutive_score(CLASS_NUMBER)
            score += self._sequential_score(CLASS_LETTER)
            score += self._sequential_score(CLASS_NUMBER)

        return score

    def _base_score(self):
        return self.length * 4

    def _letter_score(self):
        score = 0
        for token_class in (CLASS_UPPER, CLASS_LOWER):
            count = self.get_class_count(token_class)
            if 0 < count != self.length:
                score += (self.length - count) * 2
        return score

    def _number_score(self):
        count = self.get_class_count(CLASS_NUMBER)
        if 0 < count != self.length:
            return count * 4
        return 0

    def _symbol_score(self):
        return self.get_class_count(CLASS_SYMBOL) * 6

    def _middle_score(self):
        last = self.length - 1
        score = 0
        for token_class in (CLASS_NUMBER, CLASS_SYMBOL):
            score += 2 * sum(1 for index in self.get_class_indices(token_class)
                             if 0 < index < last)
        return score

    def _repeat_score(self):
        repeats = sum(count - 1 for count in self.tokens.values() if count > 1)
        if repeats:
            # length - repeats is the number of distinct characters, never 0
            return -(repeats // (self.length - repeats) + 1)
        return 0

    def _consecutive_score(self, token_class):
        pattern = _consecutive_patterns[token_class]
        return -sum((len(match) - 1) * 2 for match in pattern.findall(self.password))

    def _sequential_score(self, token_class):
        password = self.password
        if token_class == CLASS_LETTER:
            password = password.lower()
        indices = self.get_class_indices(token_class)

        sequences = []
        current = 0
        for first, second in zip(indices, indices[1:]):
            if second - first == 1 and ord(password[second]) - ord(password[first]) == 1:
                current = current + 1 if current else 2
            elif current:
                sequences.append(current)
                current = 0
        if current:
            sequences.append(current)

        return -sum((size - 2) * 2 for size in sequences if size > 2)

#=========================================================
#frontend
#=========================================================
class Strength(object):
    """calculate password strength using an :class:`Adapter`.

    :arg adapter:
        estimator to use; defaults to a new :class:`Nist` instance.
    """

    def __init__(self, adapter=None):
        self.adapter = Nist() if adapter is None else adapter

    def _get_adapter(self):
        return self._adapter

    def _set_adapter(self, adapter):
        if not isinstance(adapter, Adapter):
            raise ExpectedTypeError(adapter, "modcrypt.strength.Adapter", "adapter")
        self._adapter = adapter

    adapter = property(_get_adapter, _set_adapter)

    def calculate(self, password):
        "return score of password (unicode, or utf-8 encoded bytes)"
        password = to_unicode(password, errname="password")
        score = self.adapter.check(password)
        log.debug("%s strength score: %r", type(self.adapter).__name__, score)
        return score

#=========================================================
#eof
#=========================================================
