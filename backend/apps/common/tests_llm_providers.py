"""
Tests for the LLM provider layer and logging helpers
"""
import asyncio
import json
import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from django.core.exceptions import ImproperlyConfigured
from django.test import TestCase, override_settings

from apps.common.correlation import get_correlation_id, set_correlation_id
from apps.common.llm_providers import (
    AnthropicProvider,
    LLMProvider,
    OpenAIProvider,
    extract_brace_span,
    get_llm_provider,
    parse_model_identifier,
    strip_markdown_fences,
)
from apps.common.logging_utils import CorrelationIdFilter, JsonFormatter, build_log_extra


class ProviderFactoryTest(TestCase):
    """Test provider selection from settings.AI_MODELS"""

    def test_parse_model_identifier(self):
        self.assertEqual(parse_model_identifier('openai:gpt-4o'), ('openai', 'gpt-4o'))
        self.assertEqual(parse_model_identifier('claude-3-5-sonnet-latest'), ('anthropic', 'claude-3-5-sonnet-latest'))

    @override_settings(AI_MODELS={'audit': 'anthropic:claude-3-5-sonnet-latest'})
    def test_anthropic_provider(self):
        provider = get_llm_provider('audit')
        self.assertIsInstance(provider, AnthropicProvider)
        self.assertEqual(provider.model, 'claude-3-5-sonnet-latest')

    @override_settings(AI_MODELS={'audit': 'openai:gpt-4o-mini'})
    def test_openai_provider(self):
        self.assertIsInstance(get_llm_provider('audit'), OpenAIProvider)

    @override_settings(AI_MODELS={'audit': 'openai:gpt-4o-mini'})
    def test_unknown_key_falls_back_to_audit_model(self):
        self.assertIsInstance(get_llm_provider('something-else'), OpenAIProvider)

    @override_settings(AI_MODELS={'audit': 'anthropic:claude-3-5-sonnet-latest'}, ANTHROPIC_API_KEY='')
    def test_missing_key(self):
        with self.assertRaises(ImproperlyConfigured):
            get_llm_provider('audit')

    @override_settings(AI_MODELS={'audit': 'mistral:large'})
    def test_unknown_provider(self):
        with self.assertRaises(ValueError):
            get_llm_provider('audit')


class ResponseCleanupTest(TestCase):
    """Test fence stripping and brace extraction"""

    def test_strip_labeled_fence(self):
        self.assertEqual(strip_markdown_fences('```json\n{"a": 1}\n```'), '{"a": 1}')

    def test_strip_unlabeled_fence(self):
        self.assertEqual(strip_markdown_fences('```\n{"a": 1}\n```'), '{"a": 1}')

    def test_fence_inside_prose_left_alone(self):
        text = 'Here:\n```json\n{"a": 1}\n```\nDone.'
        self.assertEqual(strip_markdown_fences(text), text)

    def test_inner_fences_kept_when_outer_stripped(self):
        inner = '{"fix": "```solidity\\nuint x;\\n```"}'
        self.assertEqual(strip_markdown_fences(f'```json\n{inner}\n```'), inner)

    def test_bare_json_with_quoted_fence_unchanged(self):
        text = '{"fix": "```solidity\\nuint x;\\n```"}'
        self.assertEqual(strip_markdown_fences(text), text)

    def test_no_fence(self):
        self.assertEqual(strip_markdown_fences('  {"a": 1}  '), '{"a": 1}')

    def test_brace_span(self):
        self.assertEqual(extract_brace_span('x {"a": {"b": 2}} y'), '{"a": {"b": 2}}')
        self.assertIsNone(extract_brace_span('no braces'))
        self.assertIsNone(extract_brace_span('} backwards {'))


class GenerateTest(TestCase):
    """Test provider completions"""

    def test_generate_is_the_provider_contract(self):
        class Incomplete(LLMProvider):
            pass

        with self.assertRaises(TypeError):
            Incomplete(api_key='k', model='m')

    def test_anthropic_generate_joins_text_blocks(self):
        provider = AnthropicProvider(api_key='test-key')
        provider.client = MagicMock()
        provider.client.messages.create = AsyncMock(return_value=SimpleNamespace(content=[
            SimpleNamespace(type='text', text='{"score": '),
            SimpleNamespace(type='tool_use', id='t1'),
            SimpleNamespace(type='text', text='55}'),
        ]))

        text = asyncio.run(provider.generate(
            [{'role': 'user', 'content': 'audit'}], system_prompt='sys', max_tokens=100,
        ))

        self.assertEqual(text, '{"score": 55}')
        kwargs = provider.client.messages.create.await_args.kwargs
        self.assertEqual(kwargs['system'], 'sys')
        self.assertEqual(kwargs['max_tokens'], 100)

    def test_openai_generate_prepends_system_message(self):
        provider = OpenAIProvider(api_key='test-key')
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{}'))],
        ))

        text = asyncio.run(provider.generate([{'role': 'user', 'content': 'audit'}], system_prompt='sys'))

        self.assertEqual(text, '{}')
        messages = provider.client.chat.completions.create.await_args.kwargs['messages']
        self.assertEqual(messages[0], {'role': 'system', 'content': 'sys'})

    def test_empty_messages_rejected(self):
        with self.assertRaises(ValueError):
            asyncio.run(AnthropicProvider(api_key='test-key').generate([]))

    def test_sdk_retries_disabled(self):
        self.assertEqual(AnthropicProvider(api_key='test-key').client.max_retries, 0)
        self.assertEqual(OpenAIProvider(api_key='test-key').client.max_retries, 0)


class LoggingUtilsTest(TestCase):
    """Test correlation id propagation and JSON log formatting"""

    def tearDown(self):
        set_correlation_id(None)

    def test_build_log_extra_uses_context(self):
        set_correlation_id('req-1')
        self.assertEqual(build_log_extra(audit_id='a1'), {'correlation_id': 'req-1', 'audit_id': 'a1'})
        self.assertEqual(build_log_extra(correlation_id='req-2')['correlation_id'], 'req-2')

    def test_filter_fills_correlation_id(self):
        set_correlation_id('req-3')
        record = logging.LogRecord('apps.audits', logging.INFO, __file__, 1, 'hello', (), None)
        self.assertTrue(CorrelationIdFilter().filter(record))
        self.assertEqual(record.correlation_id, 'req-3')

    def test_json_formatter_includes_extra(self):
        record = logging.LogRecord('apps.audits', logging.WARNING, __file__, 1, 'audit_persist_failed', (), None)
        record.audit_id = 'abc'
        payload = json.loads(JsonFormatter().format(record))
        self.assertEqual(payload['message'], 'audit_persist_failed')
        self.assertEqual(payload['level'], 'WARNING')
        self.assertEqual(payload['audit_id'], 'abc')
        self.assertNotIn('args', payload)

    def test_correlation_id_defaults_to_none(self):
        self.assertIsNone(get_correlation_id())
