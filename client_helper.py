import hashlib

# ---- Chain-constant parameters & helpers (mirror contracts) ----

UINT32_MODULUS = 2**32

ZERO_HANDLE = "0x" + "00" * 32

LEDGER_CONTRACT = "con_mining_challenge"

def sha3_hex(s: str) -> str:
    # Matches Xian env semantics for non-hex input
    return hashlib.sha3_256(s.encode("utf-8")).hexdigest()

def domain_hash(*parts) -> str:
    return sha3_hex("FHE:v1|" + "|".join(str(x) for x in parts))

def input_proof(handle: str, contract: str, user: str) -> str:
    # Mirrors con_fhe_coprocessor.input_proof
    return domain_hash("proof", handle, contract, user)

def wrap_uint32(value: int) -> int:
    return value % UINT32_MODULUS

def check_uint32(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("Amount must be an integer")
    if not 0 <= value < UINT32_MODULUS:
        raise ValueError("Amount out of euint32 range")
    return value

# ---- Rate limiting (timestamps in seconds) -----------------------------------

def is_rate_limited(exists: bool, last_time, now, min_interval) -> bool:
    """
    Mirrors the on-chain check. A player's first contribution is never blocked.
    """
    if not exists:
        return False
    return now < last_time + min_interval

def seconds_until_allowed(exists: bool, last_time, now, min_interval):
    if not is_rate_limited(exists, last_time, now, min_interval):
        return 0
    return last_time + min_interval - now

# ---- Ranking oracle (cleartext) ----------------------------------------------

def expected_rank(totals: dict, player) -> int:
    """
    Rank the contract should produce for `player`, given every player's
    cleartext total: 1 + number of other players with a strictly greater total.
    """
    if player not in totals:
        raise ValueError("Player does not exist")
    own = totals[player]
    return 1 + sum(1 for other, total in totals.items() if other != player and total > own)

def expected_ranks(totals: dict) -> dict:
    return {player: expected_rank(totals, player) for player in totals}

# ---- Contract wrappers -------------------------------------------------------

def encrypt_amount(coprocessor, amount: int, signer: str, contract: str = LEDGER_CONTRACT):
    """
    Encrypts `amount` as an input for `contract`, bound to `signer`.
    Returns {'handle', 'proof'}, ready for contract.contribute().
    """
    check_uint32(amount)
    return coprocessor.encrypt(value=amount, contract=contract, signer=signer)

def user_decrypt(coprocessor, handle: str, signer: str):
    """
    Decrypts a handle `signer` holds a grant for. Returns None for the
    uninitialized sentinel instead of asking the coprocessor.
    """
    if handle is None or handle == ZERO_HANDLE:
        return None
    return coprocessor.decrypt(handle=handle, signer=signer)

# ---- Convenience: wallet-side state tracker (optional) ----------------------

class PlayerTracker:
    """
    Optional local helper tracking what a player's decrypted total should be,
    and when the next contribution is allowed.
    """
    def __init__(self, min_interval: int = 10):
        self.min_interval = min_interval
        self.total = 0
        self.contributions = 0
        self.last_time = None

    @property
    def exists(self) -> bool:
        return self.contributions > 0

    def can_contribute(self, now) -> bool:
        return not is_rate_limited(self.exists, self.last_time, now, self.min_interval)

    def wait_time(self, now):
        return seconds_until_allowed(self.exists, self.last_time, now, self.min_interval)

    def apply_contribution(self, amount: int, now) -> int:
        check_uint32(amount)
        if not self.can_contribute(now):
            raise ValueError("Too soon to contribute again")
        self.total = wrap_uint32(self.total + amount)
        self.contributions += 1
        self.last_time = now
        return self.total
