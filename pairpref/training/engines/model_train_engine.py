from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Collection, FrozenSet, Iterator, Optional, Sequence

from pairpref.config.training_config import TrainerConfig
from pairpref.domain.features import ChoiceRecord, init_weights
from pairpref.training.engines.online_trainer import OptimizerState, update
from pairpref.training.engines.train_result import ModelState


@dataclass(frozen=True)
class TrustPolicy:
    """
    Sample weighting by provenance (record.mode).

    - multiplier: bootstrap 中每条 trusted record 的总份数（含原始那份）
    - lr_boost  : 训练时 trusted record 的学习率倍数
    """

    trusted_modes: FrozenSet[str] = field(default_factory=frozenset)
    multiplier: int = 1
    lr_boost: float = 1.0

    def is_trusted(self, record: ChoiceRecord) -> bool:
        return record.mode is not None and record.mode in self.trusted_modes

    @classmethod
    def from_modes(
        cls,
        modes: Collection[str],
        multiplier: int = 1,
        lr_boost: float = 1.0,
    ) -> "TrustPolicy":
        return cls(trusted_modes=frozenset(modes), multiplier=multiplier, lr_boost=lr_boost)


NO_TRUST = TrustPolicy()


class ModelTrainEngine(ABC):
    """
    Abstract ModelTrainEngine (FINAL)
    """

    def __init__(self, cfg: TrainerConfig):
        self.cfg = cfg

    @abstractmethod
    def train(
        self,
        records: Sequence[ChoiceRecord],
        *,
        lr: float,
        l2: float,
        epochs: int,
        start: Optional[ModelState] = None,
        locked: Collection[str] = (),
    ) -> ModelState:
        """
        Returns a trained ModelState
        """
        raise NotImplementedError


class AdamPairwiseTrainEngine(ModelTrainEngine):
    """
    Batch training = `epochs` full passes of the online update, in record order.

    - start=None  → fresh weights + fresh OptimizerState
    - start given → 从 start 的 *copy* 继续（绝不 alias 调用方状态）
    - locked      → 这些 feature 的权重保持起始值（locked-feature fine-tune）
    """

    def __init__(self, cfg: Optional[TrainerConfig] = None, trust: TrustPolicy = NO_TRUST):
        super().__init__(cfg or TrainerConfig())
        self.trust = trust

    def train(
        self,
        records: Sequence[ChoiceRecord],
        *,
        lr: float,
        l2: float,
        epochs: int,
        start: Optional[ModelState] = None,
        locked: Collection[str] = (),
    ) -> ModelState:
        state = self._initial_state(start)
        for _ in self.iter_train(records, lr=lr, l2=l2, epochs=epochs, state=state, locked=locked):
            pass
        return state

    def iter_train(
        self,
        records: Sequence[ChoiceRecord],
        *,
        lr: float,
        l2: float,
        epochs: int,
        state: ModelState,
        locked: Collection[str] = (),
        batch: int = 1,
    ) -> Iterator[float]:
        """
        Cooperative variant: mutates `state` in place and yields the completed
        fraction after every `batch` epochs.
        """
        pinned = {k: state.weights.get(k, 0.0) for k in locked}
        batch = max(1, batch)

        for e in range(epochs):
            for r in records:
                eff_lr = lr * self.trust.lr_boost if self.trust.is_trusted(r) else lr
                weights, opt = update(
                    state.weights,
                    state.opt,
                    r.feat_a,
                    r.feat_b,
                    r.choice,
                    lr=eff_lr,
                    l2=l2,
                    beta1=self.cfg.beta1,
                    beta2=self.cfg.beta2,
                    eps=self.cfg.eps,
                )
                if pinned:
                    weights.update(pinned)
                state.weights = weights
                state.opt = opt

            if (e + 1) % batch == 0 or e + 1 == epochs:
                yield (e + 1) / epochs

    @staticmethod
    def _initial_state(start: Optional[ModelState]) -> ModelState:
        if start is None:
            return ModelState(weights=init_weights(), opt=OptimizerState.fresh())
        return start.copy()


def fine_tune(
    state: ModelState,
    records: Sequence[ChoiceRecord],
    *,
    lr: float,
    l2: float,
    epochs: int,
    locked: Collection[str] = (),
    cfg: Optional[TrainerConfig] = None,
) -> ModelState:
    """
    Continue training from a copy of `state.weights` with the `locked` features
    frozen. A fine-tune is an independent run: optimizer moments start fresh.
    The caller's state is never touched.
    """
    engine = AdamPairwiseTrainEngine(cfg)
    start = ModelState(weights=dict(state.weights), opt=OptimizerState.fresh())
    return engine.train(records, lr=lr, l2=l2, epochs=epochs, start=start, locked=locked)


def train_model(
    records: Sequence[ChoiceRecord],
    *,
    lr: float,
    l2: float,
    epochs: int,
    trust: TrustPolicy = NO_TRUST,
    locked: Collection[str] = (),
    start: Optional[ModelState] = None,
    cfg: Optional[TrainerConfig] = None,
) -> ModelState:
    """`epochs` passes of the online update in record order; fresh state unless `start` is given."""
    engine = AdamPairwiseTrainEngine(cfg, trust)
    return engine.train(records, lr=lr, l2=l2, epochs=epochs, start=start, locked=locked)
