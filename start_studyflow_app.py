# File: start_studyflow_app.py
# Development entry point: loads .env, builds the app and runs the dev server.

import os

from dotenv import load_dotenv

load_dotenv()

from studyflow_app import create_app  # noqa: E402

app = create_app()

if __name__ == '__main__':
    host = os.environ.get('FLASK_RUN_HOST', '127.0.0.1')
    port = int(os.environ.get('FLASK_RUN_PORT', 5000))
    debug = os.environ.get('FLASK_DEBUG', '0') == '1'
    app.run(host=host, port=port, debug=debug)
