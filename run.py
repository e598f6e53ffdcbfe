"""
Application entry point.

Usage:
    python run.py

Starts the Flask development server on http://localhost:5000.
"""

from buenavista import create_app

app = create_app()

if __name__ == '__main__':
    print('\n  BuenaVista')
    print('  ==========')
    print('  URL: http://localhost:5000\n')

    app.run(
        host='127.0.0.1',
        port=5000,
        debug=True,
    )
