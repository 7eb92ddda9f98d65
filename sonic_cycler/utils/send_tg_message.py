import asyncio
import re

import telebot

from sonic_cycler.logger import AsyncLogger


MARKDOWN_ESCAPE_PATTERN = re.compile(r'([_*\[\]()~`>#+\-=|{}.!])')


def format_markdown(lines: list[str]) -> str:
    formatted = []
    for line in lines:
        escaped_line = MARKDOWN_ESCAPE_PATTERN.sub(r'\\\1', line)
        if line.startswith(('=', '📊')):
            formatted.append(f"*{escaped_line}*")
        else:
            formatted.append(escaped_line)
    return '\n'.join(formatted)


class SendTgMessage(AsyncLogger):
    def __init__(self, token: str, chat_id: str) -> None:
        AsyncLogger.__init__(self)
        self.bot = telebot.TeleBot(token)
        self.chat_id = chat_id

    async def send_tg_message(self, message_to_send: list[str], disable_notification: bool = False) -> bool:
        try:
            await asyncio.to_thread(
                self.bot.send_message,
                self.chat_id,
                format_markdown(message_to_send),
                parse_mode='MarkdownV2',
                disable_notification=disable_notification
            )
        except Exception as error:
            await self.logger_msg(
                msg=f"Telegram | Error API: {error}", type_msg="error",
                method_name="send_tg_message"
            )
            return False

        await self.logger_msg(msg="The message was sent in Telegram", type_msg="success")
        return True
