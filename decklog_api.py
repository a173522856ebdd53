# decklog_api.py
# Flask API: decklog import, saved decks and a card image proxy

import logging
import os

import requests
from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from card_tokens import card_image_url, parse_card_filename
from deck_store import DeckStore
from errors import AllSourcesExhausted, InvalidDeckCode, NoMatch
from navigator import USER_AGENT_STRING
from scraper import fetch_decklog_data

# ------------ Config -------------
API_HOST = os.environ.get("DECKLOG_API_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("DECKLOG_API_PORT", "3001"))
DECK_DATA_FILE = os.environ.get("DECK_DATA_FILE", "deckData.json")

IMAGE_HEADERS = {
    "User-Agent": USER_AGENT_STRING,
    "Referer": "https://hololive-official-cardgame.com/",
}
IMAGE_TIMEOUT_SEC = 10

app = Flask(__name__)
CORS(app)  # Enable CORS for the deck builder frontend

logging.basicConfig(
    level=logging.INFO,
    format="[%(levelname)s] %(message)s"
)

deck_store = DeckStore(DECK_DATA_FILE)


# ------------ API Routes -------------

@app.route('/import-decklog/<code>', methods=['GET'])
async def import_decklog(code):
    """Scrape a deck from decklog by its deck code"""
    try:
        result = await fetch_decklog_data(code)
    except InvalidDeckCode as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except AllSourcesExhausted as e:
        logging.error(f"Decklog import failed for {code}: {e}")
        return jsonify({
            "success": False,
            "error": str(e),
            "attempts": [{"url": url, "reason": reason} for url, reason in e.attempts],
        }), 502

    response = jsonify(result.to_dict())
    response.headers["X-Decklog-Strategy"] = result.strategy_used.value
    return response


@app.route('/save', methods=['POST'])
def save_deck():
    """Store a deck payload under a code"""
    body = request.get_json(silent=True) or {}
    code = body.get("code")
    payload = body.get("payload")
    if not code or not payload:
        return "Missing data", 400

    deck_store.save(code, payload)
    return "Saved", 200


@app.route('/load/<code>', methods=['GET'])
def load_deck(code):
    """Read back a saved deck payload"""
    if not deck_store.exists():
        return "Not found", 404

    deck = deck_store.load(code)
    if not deck:
        return "Code not found", 404
    return jsonify(deck), 200


@app.route('/card-image/<filename>', methods=['GET'])
def card_image(filename):
    """Proxy card art from the official card list to avoid CORS issues"""
    try:
        card_id, version = parse_card_filename(filename)
    except NoMatch as e:
        return jsonify({"success": False, "error": str(e)}), 400

    image_url = card_image_url(card_id, version)
    try:
        response = requests.get(image_url, headers=IMAGE_HEADERS, timeout=IMAGE_TIMEOUT_SEC)
        response.raise_for_status()
    except requests.RequestException as e:
        logging.error(f"Error proxying image {image_url}: {e}")
        return jsonify({"success": False, "error": str(e)}), 502

    return Response(
        response.content,
        mimetype=response.headers.get('Content-Type', 'image/png'),
        headers={'Cache-Control': 'public, max-age=86400'}
    )


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        "success": True,
        "status": "healthy",
        "message": "Decklog API is running"
    })


# ------------ Main -------------
if __name__ == '__main__':
    logging.info(f"Deck server running on http://{API_HOST}:{API_PORT}")
    logging.info(f"Saved decks file: {os.path.abspath(DECK_DATA_FILE)}")
    app.run(host=API_HOST, port=API_PORT)
