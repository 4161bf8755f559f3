"""Lifts images out of tool outputs into attachment messages.

Some providers reject image content inside a tool result. Each image is
replaced by a placeholder naming an ID, and the image itself follows the tool
message as a user marker plus a standalone image message.
"""
from __future__ import annotations

import logging
from typing import assert_never

from llm_context.models import (
    ContentItem,
    Context,
    ImageContent,
    ImageMessage,
    Message,
    TextContent,
    TextMessage,
    ToolMessage,
    ToolOutput,
)
from llm_context.transforms.base import Transformer

logger = logging.getLogger(__name__)

PLACEHOLDER_TEMPLATE = (
    "[The image with ID {id} will be sent as an attachment in the next message]"
)
ATTACHMENT_MARKER_TEMPLATE = "[Here is the image attachment for ID {id}]"


class ImageHandling(Transformer):
    """Rewrites tool messages so no ToolOutput carries an image."""

    def transform(self, context: Context) -> Context:
        next_id = 0
        messages: list[Message] = []

        for message in context:
            match message:
                case ToolMessage():
                    values: list[ContentItem] = []
                    pending: list[tuple[int, ImageContent]] = []
                    for item in message.output.values:
                        match item:
                            case ImageContent():
                                values.append(
                                    TextContent(PLACEHOLDER_TEMPLATE.format(id=next_id))
                                )
                                pending.append((next_id, item))
                                next_id += 1
                            case TextContent():
                                values.append(item)
                            case _:
                                assert_never(item)

                    if not pending:
                        messages.append(message)
                        continue

                    messages.append(
                        ToolMessage(
                            name=message.name,
                            call_id=message.call_id,
                            output=ToolOutput(
                                values=tuple(values),
                                is_error=message.output.is_error,
                            ),
                        )
                    )
                    for image_id, image in pending:
                        messages.append(
                            TextMessage.user(ATTACHMENT_MARKER_TEMPLATE.format(id=image_id))
                        )
                        messages.append(
                            ImageMessage(url=image.url, mime_type=image.mime_type)
                        )
                case TextMessage() | ImageMessage():
                    messages.append(message)
                case _:
                    assert_never(message)

        if next_id:
            logger.debug("[ImageHandling] moved %d image(s) out of tool outputs", next_id)
        return Context(tuple(messages))

    async def apply(self, context: Context) -> Context:
        return self.transform(context)
