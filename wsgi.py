# =================================================================
#   NPC Smart Report - WSGI Entry Point
#   Used by production WSGI servers (Waitress, Gunicorn, etc.)
#
#   Usage:
#     Windows:  waitress-serve --host=0.0.0.0 --port=3000 wsgi:app
#     Linux:    gunicorn -w 1 --threads 8 -b 0.0.0.0:3000 wsgi:app
#
#   Keep a single worker process: the live-search registry and the
#   backend health status are held in process memory.
# =================================================================

from config import Config
from server import app

if __name__ == '__main__':
    app.run(host=Config.HOST, port=Config.PORT)
