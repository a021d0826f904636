from __future__ import annotations

import re

from django.core.exceptions import ValidationError
from django.utils.deconstruct import deconstructible


NIP_WEIGHTS = (6, 5, 7, 2, 3, 4, 5, 6, 7)

_NIP_SEPARATORS = re.compile(r"[\s\-]")
_NIP_SHAPE = re.compile(r"^[0-9]{10}$")


class NIPError(ValueError):
    pass


class NIPFormatError(NIPError):
    pass


class NIPChecksumError(NIPError):
    pass


def normalize_nip(value: str) -> str:
    return _NIP_SEPARATORS.sub("", str(value or ""))


def nip_checksum(digits: str) -> int:
    return sum(int(digit) * weight for digit, weight in zip(digits, NIP_WEIGHTS)) % 11


def validate_nip(value: str) -> str:
    """Validate a Polish NIP and return it as 10 bare digits.

    Spaces and dashes are accepted as separators ("775-100-14-52").
    Anything else that is not a digit, or a length other than 10, raises
    NIPFormatError. A checksum of 10 can never match a single digit, so it
    is rejected together with plain mismatches as NIPChecksumError.
    """

    nip = normalize_nip(value)
    if not _NIP_SHAPE.match(nip):
        raise NIPFormatError("NIP musi składać się z 10 cyfr.")

    checksum = nip_checksum(nip)
    if checksum == 10 or checksum != int(nip[9]):
        raise NIPChecksumError("Nieprawidłowy numer NIP (błąd sumy kontrolnej).")
    return nip


@deconstructible
class NIPValidator:
    def __call__(self, value):
        try:
            validate_nip(value)
        except NIPFormatError as exc:
            raise ValidationError(str(exc), code="nip_format") from exc
        except NIPChecksumError as exc:
            raise ValidationError(str(exc), code="nip_checksum") from exc

    def __eq__(self, other):
        return isinstance(other, NIPValidator)
