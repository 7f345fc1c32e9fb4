"""
Buyer/seller conversations about a product or a rehearsal room.

A chat about a product is what makes a user an eligible buyer for that
product, so chats are hidden per side instead of deleted.
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Q

from core import lifecycle
from core.exceptions import AuthorizationError, NotFoundError, PreconditionError
from core.models import Chat, Message
from core.services.listings import ITEM_PRODUCT, get_listing

logger = logging.getLogger(__name__)


def open_chat(*, item_type, item_id, caller):
    """
    Get or create the caller's chat about a listing.

    Returns:
        tuple (chat, created)
    """
    item = get_listing(item_type, item_id)

    if item.owner_id == caller.pk:
        raise PreconditionError('You cannot start a chat about your own listing.', code='own_listing')

    lookup = {'buyer': caller, item_type: item}
    chat = Chat.objects.filter(**lookup).first()

    if chat is not None:
        if chat.deleted_by_buyer:
            chat.deleted_by_buyer = False
            chat.save(update_fields=['deleted_by_buyer'])
        return chat, False

    if item_type == ITEM_PRODUCT and item.sold:
        raise PreconditionError('This product is already sold.', code='already_sold')

    try:
        with transaction.atomic():
            chat = Chat.objects.create(seller_id=item.owner_id, **lookup)
    except IntegrityError:
        # Another request from the same buyer created it first.
        return Chat.objects.get(**lookup), False

    logger.info(
        f"Chat opened - Chat ID: {chat.pk}, {item_type.title()} ID: {item.pk}, "
        f"Buyer: {caller.pk}, Seller: {item.owner_id}"
    )
    return chat, True


def list_chats(*, caller):
    return (
        Chat.objects.filter(
            Q(buyer=caller, deleted_by_buyer=False) | Q(seller=caller, deleted_by_seller=False)
        )
        .select_related('buyer', 'seller', 'product', 'room')
        .order_by('-updated_at')
    )


def get_chat_for_participant(*, chat_id, caller):
    chat = Chat.objects.select_related('buyer', 'seller').filter(pk=chat_id).first()
    if chat is None:
        raise NotFoundError('Chat not found.')

    if not chat.is_participant(caller):
        raise AuthorizationError('You are not a participant in this chat.')

    return chat


def list_messages(*, chat_id, caller):
    """Messages of a chat, oldest first. Marks the counterpart's messages read."""
    chat = get_chat_for_participant(chat_id=chat_id, caller=caller)

    chat.messages.filter(is_read=False).exclude(sender=caller).update(is_read=True)

    return chat.messages.select_related('sender').order_by('created_at', 'pk')


def send_message(*, chat_id, caller, content):
    """
    Append a message and bring the chat back for a side that had hidden it.
    """
    content = (content or '').strip()
    if not content:
        raise PreconditionError('Message cannot be empty.', code='empty_message')

    max_length = lifecycle.marketplace_setting('MESSAGE_MAX_LENGTH')
    if len(content) > max_length:
        raise PreconditionError(
            f'Message must be at most {max_length} characters.',
            code='message_too_long'
        )

    with transaction.atomic():
        chat = get_chat_for_participant(chat_id=chat_id, caller=caller)
        message = Message.objects.create(chat=chat, sender=caller, content=content)

        chat.deleted_by_buyer = False
        chat.deleted_by_seller = False
        chat.save(update_fields=['deleted_by_buyer', 'deleted_by_seller', 'updated_at'])

    return message


def delete_chat(*, chat_id, caller):
    """Hide the chat for the caller only; the counterpart keeps it."""
    chat = get_chat_for_participant(chat_id=chat_id, caller=caller)

    field = chat.set_deleted_for(caller, True)
    chat.save(update_fields=[field])

    logger.info(f"Chat hidden - Chat ID: {chat.pk}, User: {caller.pk}")
    return chat
