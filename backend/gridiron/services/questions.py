"""Question bank: Open Trivia DB import and lookup helpers."""

import html
import random
from typing import Optional

import requests
from flask import current_app

from gridiron import db
from gridiron.models import Question
from .errors import ActionError

# Open Trivia DB category ids by the names players pick from
OPENTDB_CATEGORY_MAP = {
    'general knowledge': 9,
    'books': 10,
    'film': 11,
    'music': 12,
    'musicals & theatres': 13,
    'television': 14,
    'video games': 15,
    'board games': 16,
    'science & nature': 17,
    'computers': 18,
    'mathematics': 19,
    'mythology': 20,
    'sports': 21,
    'geography': 22,
    'history': 23,
    'politics': 24,
    'art': 25,
    'celebrities': 26,
    'animals': 27,
    'vehicles': 28,
    'comics': 29,
    'science: gadgets': 30,
    'japanese anime & manga': 31,
    'cartoon': 32,
    'cartoons': 32,
    'cartoon & animations': 32,
}
QUESTION_DIFFICULTIES = ('easy', 'medium', 'hard')

_rng = random.Random()


def category_id(name: str) -> Optional[int]:
    return OPENTDB_CATEGORY_MAP.get((name or '').strip().lower())


def question_from_opentdb(item: dict, rng=None) -> Question:
    """Build an unsaved Question from one Open Trivia DB result."""
    correct = html.unescape(item['correct_answer'])
    choices = [correct] + [html.unescape(a) for a in item.get('incorrect_answers', [])]
    (rng or _rng).shuffle(choices)
    return Question(
        text=html.unescape(item['question']),
        choices=choices,
        correct_index=choices.index(correct),
        difficulty=item.get('difficulty') or 'medium',
        category=html.unescape(item.get('category') or '') or None,
        type=item.get('type'),
        source='opentdb',
    )


def import_open_trivia_batch(amount: int = 20, difficulty: Optional[str] = None,
                             category: Optional[int] = None) -> int:
    """Fetch ``amount`` multiple-choice questions and store them.

    Returns the number of questions imported.
    """
    if difficulty is not None and difficulty not in QUESTION_DIFFICULTIES:
        raise ActionError('Difficulty must be easy, medium or hard.')
    cfg = current_app.config
    params = {'amount': int(amount), 'type': 'multiple'}
    if difficulty:
        params['difficulty'] = difficulty
    if category:
        params['category'] = int(category)

    try:
        res = requests.get(cfg.get('OPENTDB_URL', 'https://opentdb.com/api.php'), params=params,
                           timeout=float(cfg.get('OPENTDB_TIMEOUT_SEC', 10)))
    except requests.RequestException as exc:
        current_app.logger.warning(f"[opentdb] fetch failed: {exc}")
        raise ActionError('Open Trivia DB is unreachable.', 502)
    if not res.ok:
        raise ActionError(f'OTDB fetch failed ({res.status_code})', 502)
    results = (res.json() or {}).get('results') or []
    if not results:
        raise ActionError('No OTDB results.', 502)

    rows = [question_from_opentdb(item) for item in results]
    db.session.add_all(rows)
    db.session.commit()
    current_app.logger.info(f"[opentdb] imported={len(rows)} difficulty={difficulty} category={category}")
    return len(rows)


def try_import(amount: int, difficulty: Optional[str] = None, category: Optional[int] = None) -> int:
    """Best-effort import used to top up the bank mid-game."""
    if not current_app.config.get('OPENTDB_AUTO_IMPORT', True):
        return 0
    try:
        return import_open_trivia_batch(amount, difficulty, category)
    except ActionError as exc:
        current_app.logger.warning(f"[opentdb] auto-import skipped: {exc.message}")
        return 0
