from marshmallow import Schema, fields, ValidationError, pre_load
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from marshmallow.validate import Range

from .models import db, RoundHistory # Relative import

MAX_BETS_PER_REQUEST = 200

def validate_bet_list(bets):
    """Outer shape only; per-bet rules live in utils.bet_validator."""
    if not bets:
        raise ValidationError('At least one bet is required.')
    if len(bets) > MAX_BETS_PER_REQUEST:
        raise ValidationError(f'No more than {MAX_BETS_PER_REQUEST} bets per request.')

# --- Roulette Request Schemas ---
class RouletteBetRequestSchema(Schema):
    bets = fields.List(fields.Dict(), required=True, validate=validate_bet_list)
    # Lenient on purpose: unknown multipliers are resolved by the bet validator
    bet_multiplier = fields.Raw(required=False, load_default=None, allow_none=True)

    @pre_load
    def accept_widget_aliases(self, data, **kwargs):
        # The table widget posts camelCase
        if isinstance(data, dict) and 'betMultiplier' in data and 'bet_multiplier' not in data:
            data = dict(data)
            data['bet_multiplier'] = data.pop('betMultiplier')
        return data

class HistoryQuerySchema(Schema):
    page = fields.Int(required=False, load_default=1)
    per_page = fields.Int(required=False, load_default=None, validate=Range(min=1, max=100))

    @pre_load
    def clamp_page(self, data, **kwargs):
        data = dict(data)
        try:
            if int(data.get('page', 1)) < 1:
                data['page'] = 1
        except (TypeError, ValueError):
            data['page'] = 1
        return data

# --- Roulette Response Schemas ---
class OutcomeSchema(Schema):
    number = fields.Str(attribute='cell')
    color = fields.Str()
    parity = fields.Str()

class BetSpecSchema(Schema):
    type = fields.Function(lambda bet: bet.type.value)
    targets = fields.Function(lambda bet: bet.to_dict()['targets'])
    value = fields.Str(allow_none=True)
    tokens = fields.Int()
    multiplier = fields.Int()
    stake = fields.Int()
    key = fields.Str(attribute='field_key')

class RoundResultSchema(Schema):
    outcome = fields.Nested(OutcomeSchema)
    payout = fields.Float()
    total_stake = fields.Float()
    new_balance = fields.Float()
    bet_multiplier = fields.Int()
    bets = fields.List(fields.Nested(BetSpecSchema))
    history_id = fields.Int(allow_none=True)

class BetQuoteSchema(Schema):
    bets = fields.List(fields.Nested(BetSpecSchema))
    total = fields.Float()
    base_total = fields.Int()
    bet_multiplier = fields.Int()
    credits = fields.Float()
    max_tokens = fields.Int()
    chip_multipliers = fields.List(fields.Int())

class RoundHistorySchema(SQLAlchemyAutoSchema):
    class Meta:
        model = RoundHistory
        load_instance = True
        sqla_session = db.session

    id = auto_field(dump_only=True)
    total_stake = fields.Float()
    payout = fields.Float()
    bets_json = auto_field(data_key='bets')

class TableConfigSchema(Schema):
    chip_multipliers = fields.List(fields.Int())
    bet_multipliers = fields.List(fields.Int())
    max_tokens = fields.Int()
    bet_types = fields.List(fields.Str())
    wheel_order = fields.List(fields.Str())
    history_per_page = fields.Int()
