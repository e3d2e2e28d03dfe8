"""
CONFIDENTIAL MINING CHALLENGE

Players submit encrypted amounts. The contract keeps:
  - per player: encrypted running total, last contribution time
  - globally:   encrypted aggregate of every contribution

All arithmetic runs on ciphertext handles through con_fhe_coprocessor; no
cleartext amount is ever visible here. Every handle this contract produces is
granted back to it (allow_this) immediately, the coprocessor refuses to touch
it otherwise.

A player's rank is computed on demand: 1 + number of players whose total is
strictly greater. Ties share a rank.
"""

import con_fhe_coprocessor

# -----------------------------------------------------------------------------
# Parameters & Helpers
# -----------------------------------------------------------------------------

ZERO_HANDLE = '0x' + '00' * 32

DEFAULT_MIN_INTERVAL = 10  # seconds

def is_rate_limited(exists: bool, last_time, current_time, min_interval: int):
    if not exists:
        return False
    return current_time < last_time + datetime.timedelta(seconds=min_interval)

def remaining_wait(last_time, current_time, min_interval: int):
    return (last_time + datetime.timedelta(seconds=min_interval)) - current_time

def retain(handle: str):
    con_fhe_coprocessor.allow_this(handle=handle)
    return handle

def encrypted_constant(value: int):
    return retain(con_fhe_coprocessor.as_uint32(value=value))

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# address -> {'total': str, 'exists': bool, 'last_contribution_time': datetime, 'contributions': int}
players = Hash()

# index -> address, in first-contribution order
player_registry = Hash()
player_count = Variable()

# encrypted sum over all players
aggregate = Variable()

# contract metadata / config
metadata = Hash()

# counter for events
next_tx_id = Variable()

# Events
ContributionEvent = LogEvent('Contribution', {
    'player': {'type': str, 'idx': True},
    'total_handle': {'type': str},
    'contributions': {'type': int},
    'tx_id': {'type': int, 'idx': True}
})

RankCalculatedEvent = LogEvent('RankCalculated', {
    'player': {'type': str, 'idx': True},
    'rank_handle': {'type': str},
    'players_compared': {'type': int},
    'tx_id': {'type': int, 'idx': True}
})

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed(min_interval: int = DEFAULT_MIN_INTERVAL):
    assert min_interval >= 0, 'Interval must be non-negative'

    metadata['name'] = "Confidential Mining Challenge"
    metadata['operator'] = ctx.caller
    metadata['min_interval'] = min_interval

    player_count.set(0)
    aggregate.set(ZERO_HANDLE)
    next_tx_id.set(1)

# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------

@export
def get_metadata():
    return {
        'name': metadata['name'],
        'operator': metadata['operator'],
        'min_interval': metadata['min_interval'],
        'aggregate_viewer': metadata['aggregate_viewer'],
        'player_count': player_count.get()
    }

@export
def change_metadata(key: str, value: Any):
    assert ctx.caller == metadata['operator'], 'Only operator can set metadata'
    if key == 'min_interval':
        assert isinstance(value, int) and value >= 0, 'Interval must be non-negative'
    metadata[key] = value

@export
def get_player_info(player: str):
    data = players[player]
    if data is None:
        return {
            'exists': False,
            'total': ZERO_HANDLE,
            'last_contribution_time': None,
            'contributions': 0
        }
    return {
        'exists': True,
        'total': data['total'],
        'last_contribution_time': data['last_contribution_time'],
        'contributions': data['contributions']
    }

@export
def get_player_total(player: str):
    data = players[player]
    assert data is not None, 'Player does not exist'
    return data['total']

@export
def get_last_contribution_time(player: str):
    data = players[player]
    assert data is not None, 'Player does not exist'
    return data['last_contribution_time']

@export
def player_exists(player: str):
    return players[player] is not None

@export
def get_player_count():
    return player_count.get()

@export
def get_player_at(index: int):
    assert 0 <= index < player_count.get(), 'Index out of range'
    return player_registry[index]

@export
def get_aggregate():
    return aggregate.get()

# -----------------------------------------------------------------------------
# Core: contributions
# -----------------------------------------------------------------------------

def next_tx():
    tid = next_tx_id.get()
    next_tx_id.set(tid + 1)
    return tid

def register(player: str):
    index = player_count.get()
    player_registry[index] = player
    player_count.set(index + 1)

@export
def contribute(amount_handle: str, input_proof: str):
    player = ctx.caller
    data = players[player]
    exists = data is not None
    last_time = data['last_contribution_time'] if exists else None
    min_interval = metadata['min_interval']

    assert not is_rate_limited(exists, last_time, now, min_interval), \
        'Too soon to contribute again, retry in ' + str(remaining_wait(last_time, now, min_interval))

    amount = con_fhe_coprocessor.from_external(handle=amount_handle, proof=input_proof, user=player)

    if exists:
        total = data['total']
        contributions = data['contributions']
    else:
        total = encrypted_constant(0)
        contributions = 0
        register(player)

    total = retain(con_fhe_coprocessor.add(lhs=total, rhs=amount))
    con_fhe_coprocessor.allow(handle=total, account=player)

    current = aggregate.get()
    if current == ZERO_HANDLE:
        current = encrypted_constant(0)
    current = retain(con_fhe_coprocessor.add(lhs=current, rhs=amount))
    viewer = metadata['aggregate_viewer']
    if viewer:
        con_fhe_coprocessor.allow(handle=current, account=viewer)
    aggregate.set(current)

    players[player] = {
        'total': total,
        'exists': True,
        'last_contribution_time': now,
        'contributions': contributions + 1
    }

    ContributionEvent({
        'player': player,
        'total_handle': total,
        'contributions': contributions + 1,
        'tx_id': next_tx()
    })

# -----------------------------------------------------------------------------
# Ranking
# -----------------------------------------------------------------------------

def rank_of(player: str):
    data = players[player]
    assert data is not None, 'Player does not exist'
    own_total = data['total']

    one = encrypted_constant(1)
    zero = encrypted_constant(0)

    # O(n) in the number of registered players
    count = zero
    compared = 0
    for index in range(player_count.get()):
        other = player_registry[index]
        if other == player:
            continue

        is_greater = retain(con_fhe_coprocessor.gt(lhs=players[other]['total'], rhs=own_total))
        increment = retain(con_fhe_coprocessor.select(condition=is_greater, if_true=one, if_false=zero))
        count = retain(con_fhe_coprocessor.add(lhs=count, rhs=increment))
        compared += 1

    rank = retain(con_fhe_coprocessor.add(lhs=count, rhs=one))
    con_fhe_coprocessor.allow(handle=rank, account=player)

    RankCalculatedEvent({
        'player': player,
        'rank_handle': rank,
        'players_compared': compared,
        'tx_id': next_tx()
    })
    return rank

@export
def calculate_rank(player: str):
    return rank_of(player)

@export
def calculate_my_rank():
    return rank_of(ctx.caller)
