"""Contact search, target selection and random target picking."""
import logging
import random
import re
import unicodedata
from typing import Iterable, List, Optional, Set

from models.contact import Contact

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


def _normalize(text: str) -> str:
    return unicodedata.normalize("NFC", text).lower()


def filter_contacts(contacts: Iterable[Contact], search_term: str) -> List[Contact]:
    """
    Contacts whose name contains the term, or whose phone number contains its digits.

    Name matching is case-insensitive on NFC-normalised text. Phone matching
    compares digits only and is attempted only when the term has digits.
    An empty term matches every contact that has a name; unnamed contacts
    are only found through their phone digits.
    """
    term = _normalize(search_term or "")
    term_digits = _NON_DIGITS.sub("", term)

    matches = []
    for contact in contacts:
        name_match = bool(contact.name) and term in _normalize(contact.name)
        phone_match = bool(term_digits) and any(
            term_digits in _NON_DIGITS.sub("", phone.number or "")
            for phone in contact.phone_numbers
        )
        if name_match or phone_match:
            matches.append(contact)
    return matches


def select_targets(contacts: Iterable[Contact], selected_ids: Iterable[str]) -> List[Contact]:
    """Device contacts the user ticked, in device order."""
    wanted: Set[str] = set(selected_ids)
    return [contact for contact in contacts if contact.id in wanted]


def preselected_ids(device_contacts: Iterable[Contact], targets: Iterable[Contact]) -> List[str]:
    """Ids of saved targets that still exist among the device contacts."""
    device_ids = {contact.id for contact in device_contacts}
    return [target.id for target in targets if target.id in device_ids]


def pick_random_target(targets: List[Contact], rng: Optional[random.Random] = None) -> Contact:
    """
    Pick one saved target uniformly at random.

    Raises:
        ValueError: If there are no saved targets
    """
    if not targets:
        raise ValueError("No targets are saved, so a random selection cannot be made.")
    chooser = rng or random
    selected = targets[chooser.randrange(len(targets))]
    logger.info(f"Randomly selected target {selected.id} out of {len(targets)}")
    return selected
