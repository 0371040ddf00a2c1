from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from http import HTTPStatus
from marshmallow import ValidationError

from ..schemas import ( # Relative import
    RouletteBetRequestSchema, HistoryQuerySchema, RoundResultSchema,
    BetQuoteSchema, TableConfigSchema
)
from ..utils.board import CHIP_MULTIPLIERS, BET_MULTIPLIERS, MAX_TOKENS_PER_FIELD, WHEEL_ORDER, BetType
from ..utils.decorators import feature_flag_required
from ..utils.security import limiter, spin_rate_limit
from roulette_be.exceptions import ValidationException, AuthenticationException

roulette_bp = Blueprint('roulette', __name__, url_prefix='/api/roulette')


def _engine():
    return current_app.extensions['roulette_engine']


def _current_player_id():
    identity = get_jwt_identity()
    try:
        return int(identity)
    except (TypeError, ValueError):
        current_app.logger.warning(f"Roulette request with unusable token identity: {identity!r}")
        raise AuthenticationException(status_message='Token identity is not a player id.')


def _load_bet_request():
    json_data = request.get_json(silent=True)
    if not json_data:
        raise ValidationException(status_message="Invalid JSON payload.")
    try:
        return RouletteBetRequestSchema().load(json_data)
    except ValidationError as e:
        raise ValidationException(status_message="Input validation failed.", details=e.messages)


@roulette_bp.route('/config', methods=['GET'])
@feature_flag_required('ROULETTE_ENABLED')
def roulette_config():
    table_config = {
        'chip_multipliers': list(CHIP_MULTIPLIERS),
        'bet_multipliers': list(BET_MULTIPLIERS),
        'max_tokens': MAX_TOKENS_PER_FIELD,
        'bet_types': [bet_type.value for bet_type in BetType],
        'wheel_order': list(WHEEL_ORDER),
        'history_per_page': current_app.config['ROULETTE_HISTORY_PER_PAGE'],
    }
    return jsonify({'status': True, 'config': TableConfigSchema().dump(table_config)}), HTTPStatus.OK


@roulette_bp.route('/balance', methods=['GET'])
@feature_flag_required('ROULETTE_ENABLED')
@jwt_required()
def roulette_balance():
    player_id = _current_player_id()
    credits = _engine().ledger.get_balance(player_id)
    return jsonify({'status': True, 'credits': float(credits)}), HTTPStatus.OK


@roulette_bp.route('/bet', methods=['POST'])
@feature_flag_required('ROULETTE_ENABLED')
@jwt_required()
def roulette_bet():
    """Validates a wager set against table rules and the current balance. Nothing is debited."""
    player_id = _current_player_id()
    loaded_data = _load_bet_request()

    quote = _engine().quote_round(player_id, loaded_data['bets'], loaded_data['bet_multiplier'])
    return jsonify({'status': True, **BetQuoteSchema().dump(quote)}), HTTPStatus.OK


@roulette_bp.route('/spin', methods=['POST'])
@feature_flag_required('ROULETTE_ENABLED')
@jwt_required()
@limiter.limit(spin_rate_limit)
def roulette_spin():
    player_id = _current_player_id()
    loaded_data = _load_bet_request()

    result = _engine().play_round(player_id, loaded_data['bets'], loaded_data['bet_multiplier'])

    current_app.logger.info(
        f"Roulette spin for player {player_id}: stake {result.total_stake}, "
        f"landed {result.outcome.cell}, payout {result.payout}, balance {result.new_balance}"
    )
    return jsonify({'status': True, **RoundResultSchema().dump(result)}), HTTPStatus.OK


@roulette_bp.route('/history', methods=['GET'])
@feature_flag_required('ROULETTE_ENABLED')
@jwt_required()
def roulette_history():
    player_id = _current_player_id()
    try:
        query = HistoryQuerySchema().load(request.args.to_dict())
    except ValidationError as e:
        raise ValidationException(status_message="Invalid history query.", details=e.messages)

    page_size = query['per_page'] or current_app.config['ROULETTE_HISTORY_PER_PAGE']
    history = _engine().get_history(player_id, query['page'], page_size)
    return jsonify({'status': True, **history}), HTTPStatus.OK
