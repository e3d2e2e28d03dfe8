"""
MOCK FHE COPROCESSOR

Ciphertexts are opaque handles. Contracts operate on handles only:
  - add(a, b)          -> (a + b) mod 2**32
  - gt(a, b)           -> ebool (a > b)
  - select(c, a, b)    -> c ? a : b
  - as_uint32(n)       -> trivial encryption of a constant

Cleartexts are kept in contract state. This stands in for a real FHE backend
in local networks and tests; it gives NO confidentiality.

Access control: an account (user or contract) may only operate on, grant or
decrypt a handle it was granted. Grants are append-only. Results come back
ungranted: the producer must allow_this the new handle before producing
another one, after that the handle is unusable for it.
"""

# -----------------------------------------------------------------------------
# Parameters & Helpers
# -----------------------------------------------------------------------------

UINT32_MODULUS = 2**32

EUINT32 = 'euint32'
EBOOL = 'ebool'

ZERO_HANDLE = '0x' + '00' * 32  # reserved: "no handle"

def domain_hash(*parts):
    s = "|".join(str(x) for x in parts)
    return hashlib.sha3("FHE:v1|" + s)

def input_proof(handle: str, contract: str, user: str):
    return domain_hash('proof', handle, contract, user)

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# handle -> {'type': str, 'value': int}
ciphertexts = Hash()

# (handle, account) -> bool
acl = Hash(default_value=False)

# account -> last handle it produced
latest = Hash()

# handle -> {'contract': str, 'user': str}
inputs = Hash()

handle_nonce = Variable()

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed():
    handle_nonce.set(0)

# -----------------------------------------------------------------------------
# Internals
# -----------------------------------------------------------------------------

def new_handle(kind: str, value: int):
    nonce = handle_nonce.get() + 1
    handle_nonce.set(nonce)

    handle = '0x' + domain_hash('handle', nonce, kind, ctx.caller)
    ciphertexts[handle] = {'type': kind, 'value': value}
    latest[ctx.caller] = handle
    return handle

def load(handle: str, kind: str):
    assert handle != ZERO_HANDLE, 'Uninitialized handle'
    ct = ciphertexts[handle]
    assert ct is not None, 'Unknown handle'
    assert acl[handle, ctx.caller], 'Grant missing'
    assert ct['type'] == kind, 'Type mismatch'
    return ct['value']

def grant(handle: str, account: str, claimable: bool):
    assert handle != ZERO_HANDLE, 'Uninitialized handle'
    assert ciphertexts[handle] is not None, 'Unknown handle'
    assert acl[handle, ctx.caller] or claimable, 'Grant missing'
    if not acl[handle, account]:
        acl[handle, account] = True

# -----------------------------------------------------------------------------
# Inputs
# -----------------------------------------------------------------------------

@export
def encrypt(value: int, contract: str):
    # Client-side encryption of an input bound to (contract, user).
    assert 0 <= value < UINT32_MODULUS, 'Value out of range'

    handle = new_handle(EUINT32, value)
    inputs[handle] = {'contract': contract, 'user': ctx.caller}
    return {
        'handle': handle,
        'proof': input_proof(handle, contract, ctx.caller)
    }

@export
def from_external(handle: str, proof: str, user: str):
    bound = inputs[handle]
    assert bound is not None, 'Invalid input proof'
    assert bound['contract'] == ctx.caller and bound['user'] == user, 'Invalid input proof'
    assert proof == input_proof(handle, ctx.caller, user), 'Invalid input proof'

    if not acl[handle, ctx.caller]:
        acl[handle, ctx.caller] = True
    return handle

# -----------------------------------------------------------------------------
# Homomorphic operations
# -----------------------------------------------------------------------------

@export
def as_uint32(value: int):
    assert 0 <= value < UINT32_MODULUS, 'Value out of range'
    return new_handle(EUINT32, value)

@export
def add(lhs: str, rhs: str):
    # Wraps on overflow, like the fixed-width cleartext type.
    a = load(lhs, EUINT32)
    b = load(rhs, EUINT32)
    return new_handle(EUINT32, (a + b) % UINT32_MODULUS)

@export
def gt(lhs: str, rhs: str):
    a = load(lhs, EUINT32)
    b = load(rhs, EUINT32)
    return new_handle(EBOOL, 1 if a > b else 0)

@export
def select(condition: str, if_true: str, if_false: str):
    c = load(condition, EBOOL)

    kind = ciphertexts[if_true]['type'] if ciphertexts[if_true] else None
    a = load(if_true, kind)
    b = load(if_false, kind)
    return new_handle(kind, a if c == 1 else b)

# -----------------------------------------------------------------------------
# Access control
# -----------------------------------------------------------------------------

@export
def allow_this(handle: str):
    # A producer may claim a handle only before it produces the next one.
    grant(handle, ctx.caller, latest[ctx.caller] == handle)

@export
def allow(handle: str, account: str):
    # ":" and "." delimit state keys
    assert account and ':' not in account and '.' not in account, 'Invalid account'
    grant(handle, account, False)

@export
def is_allowed(handle: str, account: str):
    return acl[handle, account]

@export
def get_type(handle: str):
    ct = ciphertexts[handle]
    return ct['type'] if ct else None

# -----------------------------------------------------------------------------
# Decryption oracle
# -----------------------------------------------------------------------------

@export
def decrypt(handle: str):
    assert handle != ZERO_HANDLE, 'Uninitialized handle'
    assert acl[handle, ctx.caller], 'Not allowed to decrypt'
    ct = ciphertexts[handle]
    assert ct is not None, 'Unknown handle'
    return ct['value']
