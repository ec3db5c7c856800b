"""
Serve the project with uvicorn.

The analyze endpoint returns an async streaming response and has to run
under an ASGI server.

Usage: python manage.py runasgi [--host HOST] [--port PORT] [--workers N]
"""
import uvicorn
from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = 'Serve the audit API under uvicorn (required for streamed analyses)'

    def add_arguments(self, parser):
        parser.add_argument('--host', default='127.0.0.1')
        parser.add_argument('--port', type=int, default=8000)
        parser.add_argument(
            '--workers',
            type=int,
            default=1,
            help='Worker processes (disables auto-reload when > 1)',
        )
        parser.add_argument(
            '--no-reload',
            action='store_true',
            help='Disable auto-reload on code changes',
        )

    def handle(self, *args, **options):
        host = options['host']
        port = options['port']
        workers = options['workers']
        if workers < 1:
            raise CommandError('--workers must be at least 1')
        reload_flag = not options['no_reload'] and workers == 1

        self.stdout.write(
            self.style.SUCCESS(f'Serving audit API at http://{host}:{port}')
        )

        uvicorn.run(
            'config.asgi:application',
            host=host,
            port=port,
            reload=reload_flag,
            workers=workers,
            log_level='info',
        )
