"""generator.py — Fill a method's argument slots with random typed values.

Only elementary signatures are fuzzed. A compound signature (array, struct,
dict, ...) anywhere in the method aborts generation for the whole method and
raises the session's unsupported-signature signal instead.
"""

import logging

from dbusfuzz.core.catalog import MethodUnderTest
from dbusfuzz.core.outcome import FuzzInternalError
from dbusfuzz.core.session import FuzzSession
from dbusfuzz.core.values import ELEMENTARY_CODES, DBusValue

log = logging.getLogger(__name__)


def generate_values(method: MethodUnderTest, rand, session: FuzzSession) -> bool:
    """Generate a value for every argument of *method*.

    *rand* is the random value source: ``rand.next_value(code)`` returns a
    plain Python value (a DBusValue for 'v').

    Returns True when all slots hold a fresh value, False when the method
    has an unsupported signature. Raises FuzzInternalError otherwise.
    """
    if session.unsupported_signature is not None:
        return False

    for slot in method.arguments:
        if slot.compound:
            session.flag_unsupported(slot.signature)
            method.clear_values()
            log.debug("Unsupported signature '%s' in %s", slot.signature, method.describe())
            return False

        code = slot.signature
        if code not in ELEMENTARY_CODES:
            method.clear_values()
            raise FuzzInternalError(
                f"Unknown argument signature '{code}' of method '{method.name}'")

        try:
            raw = rand.next_value(code)
            slot.generated_value = DBusValue(code, raw)
        except Exception as e:
            method.clear_values()
            raise FuzzInternalError(
                f"Failed to construct value for '{code}' signature of method '{method.name}': {e}") from e

    return True
