"""
Tests for the runasgi management command
"""
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase


@patch('apps.common.management.commands.runasgi.uvicorn.run')
class RunAsgiCommandTest(SimpleTestCase):

    def test_defaults(self, mock_run):
        call_command('runasgi', stdout=StringIO())
        mock_run.assert_called_once_with(
            'config.asgi:application',
            host='127.0.0.1',
            port=8000,
            reload=True,
            workers=1,
            log_level='info',
        )

    def test_multiple_workers_disable_reload(self, mock_run):
        call_command('runasgi', '--workers', '4', '--port', '9000', stdout=StringIO())
        kwargs = mock_run.call_args.kwargs
        self.assertEqual(kwargs['workers'], 4)
        self.assertEqual(kwargs['port'], 9000)
        self.assertFalse(kwargs['reload'])

    def test_invalid_workers(self, mock_run):
        with self.assertRaises(CommandError):
            call_command('runasgi', '--workers', '0', stdout=StringIO())
        mock_run.assert_not_called()
