"""
Sender allow/deny lists.

An empty allow list admits everyone. A sender on the deny list is always
rejected, even when also allowed.
"""

from infra.bot_config import WhatsAppSettings


def is_in_white_list(white_list, sender: str) -> bool:
    if not white_list:
        return True
    return str(sender) in [str(number) for number in white_list]


def is_in_black_list(black_list, sender: str) -> bool:
    if not black_list:
        return False
    return str(sender) in [str(number) for number in black_list]


def is_allowed(sender: str, settings: WhatsAppSettings) -> bool:
    return is_in_white_list(settings.white_list, sender) and not is_in_black_list(
        settings.black_list, sender
    )
