from flask import Blueprint, jsonify
from sqlalchemy import text

from . import db

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'name': 'gridiron', 'status': 'ok'})


@main.route('/health')
def health():
    db.session.execute(text('SELECT 1'))
    return jsonify({'status': 'ok'})
