# pairpref/training/engines/online_trainer.py
"""
Online pairwise trainer: one Adam-optimized logistic step per user decision.

    x      = featA - featB            (union of featA / featB / weights keys)
    p      = sigmoid(w · x)
    y      = 1 if choice == "A" else 0
    g[k]   = (p - y) * x[k] + l2 * w[k]     (L2 on the pre-update weight)
    w[k]  -= lr * mHat / (sqrt(vHat) + eps)

Known risk (fail-soft):
    Inputs are NOT validated here. A non-numeric feature becomes NaN and the
    NaN propagates into the returned weights instead of raising. Callers that
    handle untrusted data validate records first (see domain.validation).
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from pairpref.domain.features import WeightVector, as_number, init_weights
from pairpref.training.engines.scoring import sigmoid

BETA1 = 0.9
BETA2 = 0.999
EPS = 1e-8


@dataclass
class OptimizerState:
    """
    Adam 状态：一阶 / 二阶矩 + 全局 step 计数

    - 一个 WeightVector 生命周期独占一个 OptimizerState
    - 新的独立训练必须 fresh()，不可复用
    """

    t: int = 0
    m: Dict[str, float] = field(default_factory=dict)
    v: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def fresh(cls) -> "OptimizerState":
        return cls()

    def copy(self) -> "OptimizerState":
        return OptimizerState(t=self.t, m=dict(self.m), v=dict(self.v))

    def to_dict(self) -> dict:
        return {"t": self.t, "m": dict(self.m), "v": dict(self.v)}

    @classmethod
    def from_dict(cls, raw: Optional[Mapping]) -> "OptimizerState":
        raw = raw or {}
        return cls(
            t=int(raw.get("t", 0)),
            m={k: float(v) for k, v in (raw.get("m") or {}).items()},
            v={k: float(v) for k, v in (raw.get("v") or {}).items()},
        )


def update(
    weights: Optional[Mapping[str, float]],
    opt_state: Optional[OptimizerState],
    feat_a: Optional[Mapping[str, float]],
    feat_b: Optional[Mapping[str, float]],
    choice: str,
    lr: float = 0.05,
    l2: float = 0.001,
    beta1: float = BETA1,
    beta2: float = BETA2,
    eps: float = EPS,
) -> Tuple[WeightVector, OptimizerState]:
    """
    One online Adam step. Pure: returns new objects, mutates nothing.
    """
    weights = weights if weights is not None else init_weights()
    opt_state = opt_state if opt_state is not None else OptimizerState.fresh()
    feat_a = feat_a or {}
    feat_b = feat_b or {}

    keys = dict.fromkeys(list(feat_a) + list(feat_b) + list(weights))
    x = {k: as_number(feat_a.get(k)) - as_number(feat_b.get(k)) for k in keys}

    s = 0.0
    for k, xk in x.items():
        s += as_number(weights.get(k)) * xk
    p = sigmoid(s)
    y = 1.0 if choice == "A" else 0.0

    t = opt_state.t + 1
    m = dict(opt_state.m)
    v = dict(opt_state.v)
    next_weights: WeightVector = {k: as_number(w) for k, w in weights.items()}

    bc1 = 1.0 - beta1 ** t
    bc2 = 1.0 - beta2 ** t

    for k, xk in x.items():
        wk = next_weights.get(k, 0.0)
        g = (p - y) * xk + l2 * wk
        m[k] = beta1 * m.get(k, 0.0) + (1.0 - beta1) * g
        v[k] = beta2 * v.get(k, 0.0) + (1.0 - beta2) * g * g

        m_hat = m[k] / bc1
        v_hat = v[k] / bc2
        next_weights[k] = wk - lr * m_hat / (math.sqrt(v_hat) + eps)

    return next_weights, OptimizerState(t=t, m=m, v=v)
