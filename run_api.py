"""
Entry point for the album API server.

Usage:
    python run_api.py                    # Development (auto-reload)
    python run_api.py --production       # Production mode
    python run_api.py --db family.db     # Use a specific database file
    python run_api.py --init-db          # Create/migrate the schema and exit

Or directly with uvicorn:
    uvicorn api:create_app --factory --reload --port 8000
"""

import os
import sys
import logging
import argparse

# Ensure the script's directory is in Python path for local imports
_script_dir = os.path.dirname(os.path.abspath(__file__))
if _script_dir not in sys.path:
    sys.path.insert(0, _script_dir)


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Family Album API Server')
    parser.add_argument('--port', type=int, default=int(os.environ.get('PORT', 8000)),
                        help='Port to listen on (default: 8000)')
    parser.add_argument('--host', default='0.0.0.0', help='Host to bind to (default: 0.0.0.0)')
    parser.add_argument('--db', help='SQLite database file (default: DB_PATH env or album.db)')
    parser.add_argument('--album-dir', help='Directory for uploaded files (overrides album_config.json)')
    parser.add_argument('--init-db', action='store_true', help='Create or migrate the schema, then exit')
    parser.add_argument('--production', action='store_true', help='Run in production mode')
    parser.add_argument('--workers', type=int, default=1, help='Number of workers (production)')
    parser.add_argument('--log-level', default='info',
                        choices=['critical', 'error', 'warning', 'info', 'debug'])
    return parser.parse_args(argv)


def main(argv=None):
    args = _parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format='%(asctime)s %(levelname)s %(message)s')

    # Passed through the environment so reload/worker processes see them too
    if args.db:
        os.environ['DB_PATH'] = args.db
    if args.album_dir:
        os.environ['ALBUM_DIR'] = args.album_dir

    if args.init_db:
        from db import init_database, get_db_path
        init_database()
        logging.info(f"Schema ready in {get_db_path()}")
        return

    import uvicorn

    options = dict(factory=True, host=args.host, port=args.port, log_level=args.log_level)
    if args.production:
        options['workers'] = args.workers
    else:
        options['reload'] = True
        options['reload_dirs'] = [_script_dir]
    uvicorn.run("api:create_app", **options)


if __name__ == '__main__':
    main()
