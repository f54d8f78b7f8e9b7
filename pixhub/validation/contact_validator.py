from typing import Iterable, Sequence, Union

from pixhub.errors import ValidationError
from pixhub.models.contact import MAX_KEYS_PER_CONTACT
from pixhub.models.enums import KeyType
from pixhub.models.pix_key import PixKey, PixKeyRequest
from pixhub.validation import key_validator


def validate_keys(keys: Sequence[tuple[str, KeyType]]) -> None:
    """
    Validate a contact's key bundle, given as (value, key_type) pairs.

    Rules are checked key by key in sequence order and the first failure
    raises ValidationError:
      - the bundle holds 1 to 5 keys
      - no raw value appears twice
      - no key type appears twice (one key per type per contact)
      - every key passes the key validator for its type
    """
    if not keys:
        raise ValidationError("at least one PIX key is required")
    if len(keys) > MAX_KEYS_PER_CONTACT:
        raise ValidationError(f"a contact holds at most {MAX_KEYS_PER_CONTACT} PIX keys")

    seen_values: set[str] = set()
    seen_types: set[KeyType] = set()

    for value, key_type in keys:
        if value in seen_values:
            raise ValidationError("keys must be unique")
        seen_values.add(value)

        if key_type in seen_types:
            raise ValidationError("key types must be unique")
        seen_types.add(key_type)

        if not key_validator.validate(value, key_type):
            raise ValidationError(key_validator.invalid_key_message(key_type))


def key_pairs(keys: Iterable[Union[PixKey, PixKeyRequest]]) -> list[tuple[str, KeyType]]:
    """Adapt stored PixKey records or incoming PixKeyRequest bodies to (value, key_type) pairs."""
    pairs = []
    for k in keys:
        if isinstance(k, PixKey):
            pairs.append((k.raw_value, k.key_type))
        elif isinstance(k, PixKeyRequest):
            pairs.append((k.value, k.key_type))
        else:
            raise TypeError(f"expected PixKey or PixKeyRequest, got {type(k).__name__}")
    return pairs
