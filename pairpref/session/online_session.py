# pairpref/session/online_session.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from pairpref import logs
from pairpref.config.training_config import SessionConfig, TrainerConfig
from pairpref.domain.features import CHOICES, ChoiceRecord, FeatureVector, init_weights
from pairpref.io.state_store import InMemoryStateStore, StateStore
from pairpref.training.engines.online_trainer import OptimizerState, update
from pairpref.training.engines.scoring import score, softmax_prob
from pairpref.training.engines.train_result import ModelState
from pairpref.utils.errors import UserInputError


@dataclass(frozen=True)
class Decision:
    """What one choose() call did: the record plus the pre-update prediction."""

    record: ChoiceRecord
    score_a: float
    score_b: float
    prob_a: float


class OnlineSession:
    """
    OnlineSession（Paradigm A: online per-choice training）

    Semantics:
    - 每个 mode 一套独立 ModelState（学习率由 SessionConfig 决定）
    - choose() = 一次 online update + 追加日志 + 通过 StateStore 保存
    - 日志里的 mode 默认是当前 mode，回放时保留原 record 的 mode（provenance）
    - 不做 record 校验（fail-soft，与 online trainer 一致）
    - session 自身不碰存储介质，只和 StateStore 交换 dict
    """

    def __init__(
            self,
            cfg: Optional[SessionConfig] = None,
            store: Optional[StateStore] = None,
            trainer: Optional[TrainerConfig] = None,
    ):
        self.cfg = cfg or SessionConfig()
        self.store: StateStore = store if store is not None else InMemoryStateStore()
        self.trainer = trainer or TrainerConfig()

        self.mode = self.cfg.default_mode
        self.models: Dict[str, ModelState] = self._fresh_models()
        self.log: List[ChoiceRecord] = []

        self._restore(self.store.load())

    # --------------------------------------------------
    # State
    # --------------------------------------------------
    def _fresh_models(self) -> Dict[str, ModelState]:
        return {
            m: ModelState(weights=init_weights(), opt=OptimizerState.fresh())
            for m in self.cfg.modes
        }

    def _restore(self, raw: Optional[Mapping[str, Any]]) -> None:
        if not raw:
            return

        for m, state in (raw.get("models") or {}).items():
            if m in self.models:
                self.models[m] = ModelState.from_dict(state)
            else:
                logs.warning(f"[OnlineSession] ignoring unknown mode in state: {m}")

        mode = raw.get("mode")
        if mode in self.models:
            self.mode = mode

        self.log = [
            ChoiceRecord.build(r["A"], r["B"], r["choice"], r.get("mode"))
            for r in raw.get("log") or []
        ]
        logs.info(
            f"[OnlineSession] restored mode={self.mode} decisions={len(self.log)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "models": {m: s.to_dict() for m, s in self.models.items()},
            "log": [
                {"A": dict(r.feat_a), "B": dict(r.feat_b), "choice": r.choice, "mode": r.mode}
                for r in self.log
            ],
        }

    def save(self) -> None:
        self.store.save(self.to_dict())

    # --------------------------------------------------
    # Mode
    # --------------------------------------------------
    def set_mode(self, mode: str) -> None:
        if mode not in self.models:
            raise UserInputError(f"unknown mode {mode!r}, expected one of {list(self.models)}")
        self.mode = mode

    @property
    def current(self) -> ModelState:
        return self.models[self.mode]

    @property
    def weights(self) -> Dict[str, float]:
        return dict(self.current.weights)

    @property
    def learning_rate(self) -> float:
        return self.cfg.modes[self.mode]

    # --------------------------------------------------
    # Decisions
    # --------------------------------------------------
    def probability(self, feat_a: Mapping[str, float], feat_b: Mapping[str, float]) -> float:
        """p(A) under the current mode's model (softmax of the two scores)."""
        w = self.current.weights
        return softmax_prob(score(w, feat_a), score(w, feat_b))

    def choose(
            self,
            feat_a: Mapping[str, float],
            feat_b: Mapping[str, float],
            choice: str,
            tag: Optional[str] = None,
    ) -> Decision:
        """
        Train the current mode on one decision. `tag` overrides the mode stored
        on the logged record (replayed records keep their own provenance).
        """
        if choice not in CHOICES:
            raise UserInputError(f"choice must be 'A' or 'B', got {choice!r}")

        state = self.current
        sa = score(state.weights, feat_a)
        sb = score(state.weights, feat_b)
        p = softmax_prob(sa, sb)

        weights, opt = update(
            state.weights,
            state.opt,
            feat_a,
            feat_b,
            choice,
            lr=self.learning_rate,
            l2=self.cfg.l2,
            beta1=self.trainer.beta1,
            beta2=self.trainer.beta2,
            eps=self.trainer.eps,
        )
        self.models[self.mode] = ModelState(weights=weights, opt=opt)

        record = ChoiceRecord.build(
            FeatureVector.from_mapping(feat_a),
            FeatureVector.from_mapping(feat_b),
            choice,
            tag or self.mode,
        )
        self.log.append(record)
        self.save()

        logs.debug(
            f"[OnlineSession] mode={self.mode} choice={choice} "
            f"p(A)={p:.3f} t={opt.t}"
        )
        return Decision(record=record, score_a=sa, score_b=sb, prob_a=p)

    def reset(self) -> None:
        self.mode = self.cfg.default_mode
        self.models = self._fresh_models()
        self.log = []
        self.store.reset()
        logs.info("[OnlineSession] reset")

    def export_records(self) -> List[ChoiceRecord]:
        return list(self.log)
