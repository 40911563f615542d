"""
Recalled-history middleware.

Intercepts LangChain messages before they are sent to the LLM and runs the
conversation part of them through the processor pipeline. System messages
are kept in front, untouched.

The checkpointer still stores the complete history; this middleware only
affects what the LLM sees.
"""

import logging
from typing import Optional, Sequence

from langchain_core.messages import SystemMessage

from .config import MemoryConfig, build_processors
from .convert import from_langchain_messages, to_langchain_messages
from .pipeline import ProcessorPipeline
from .processors.base import MemoryProcessor
from .tokenizer import estimate_tokens

logger = logging.getLogger(__name__)


class MemoryMiddleware:
    """
    Processor pipeline middleware.

    Usage:
        middleware = MemoryMiddleware(MemoryConfig.from_env(), model_name=model)
        trimmed = middleware.apply(messages)
        # Send trimmed messages to LLM instead of full history

    Pass `processors` to use an explicit processor list instead of the one
    built from `config`.
    """

    def __init__(
        self,
        config: Optional[MemoryConfig] = None,
        processors: Optional[Sequence[MemoryProcessor]] = None,
        model_name: str = "",
        system_prompt: str = "",
    ):
        self.config = config or MemoryConfig()
        self.model_name = model_name
        self.system_prompt_tokens = estimate_tokens(system_prompt)
        if processors is None:
            processors = build_processors(
                self.config, model_name, self.system_prompt_tokens
            )
        self.pipeline = ProcessorPipeline(processors)

    def apply(self, messages: list) -> list:
        """
        Run the pipeline over LangChain messages.

        Returns a new list; the original list is not modified.
        """
        if not messages:
            return list(messages)

        # Separate system messages from conversation messages
        system_msgs = []
        conversation_msgs = []
        for msg in messages:
            if isinstance(msg, SystemMessage):
                system_msgs.append(msg)
            else:
                conversation_msgs.append(msg)

        processed = self.pipeline.run(from_langchain_messages(conversation_msgs))
        result = system_msgs + to_langchain_messages(processed)

        if len(processed) < len(conversation_msgs):
            logger.info(
                "Memory pipeline %s: kept %d of %d messages",
                self.pipeline,
                len(processed),
                len(conversation_msgs),
            )
        else:
            logger.debug("All %d messages kept by %s", len(conversation_msgs), self.pipeline)

        return result
