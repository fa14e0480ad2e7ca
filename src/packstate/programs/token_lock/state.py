# src/packstate/programs/token_lock/state.py
"""Token-lock records.

LockConfig (97 bytes)
  is_initialized        0..1
  authority             1..33
  token_mint            33..65
  total_locked          65..73    u64
  min_lock_duration     73..81    i64
  max_lock_duration     81..89    i64
  unlock_fee            89..91    u16 basis points
  early_unlock_penalty  91..93    u16 basis points
  lock_count            93..97    u32

TokenLock (99 bytes)
  is_initialized        0..1
  owner                 1..33
  token_account         33..65
  amount                65..73    u64
  start_time            73..81    i64
  end_time              81..89    i64
  unlock_available      89..97    i64
  is_early_unlock       97..98
  status                98..99    LockStatus
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

from packstate.codec.fields import BOOL, I64, PUBKEY, U16, U32, U64, EnumByte
from packstate.codec.layout import RecordLayout
from packstate.codec.pubkey import Pubkey
from packstate.codec.record import Record


class LockStatus(IntEnum):
    NONE = 0
    ACTIVE = 1
    RELEASED = 2
    RELEASED_EARLY = 3


@dataclass
class LockConfig(Record):
    LAYOUT = RecordLayout(
        ("is_initialized", BOOL),
        ("authority", PUBKEY),
        ("token_mint", PUBKEY),
        ("total_locked", U64),
        ("min_lock_duration", I64),
        ("max_lock_duration", I64),
        ("unlock_fee", U16),
        ("early_unlock_penalty", U16),
        ("lock_count", U32),
    )

    is_initialized: bool = False
    authority: Pubkey = field(default_factory=Pubkey.zero)
    token_mint: Pubkey = field(default_factory=Pubkey.zero)
    total_locked: int = 0
    min_lock_duration: int = 0
    max_lock_duration: int = 0
    unlock_fee: int = 0
    early_unlock_penalty: int = 0
    lock_count: int = 0


@dataclass
class TokenLock(Record):
    LAYOUT = RecordLayout(
        ("is_initialized", BOOL),
        ("owner", PUBKEY),
        ("token_account", PUBKEY),
        ("amount", U64),
        ("start_time", I64),
        ("end_time", I64),
        ("unlock_available", I64),
        ("is_early_unlock", BOOL),
        ("status", EnumByte(LockStatus)),
    )

    is_initialized: bool = False
    owner: Pubkey = field(default_factory=Pubkey.zero)
    token_account: Pubkey = field(default_factory=Pubkey.zero)
    amount: int = 0
    start_time: int = 0
    end_time: int = 0
    unlock_available: int = 0
    is_early_unlock: bool = False
    status: LockStatus = LockStatus.NONE
