"""
Training Doctrine (FINAL / FROZEN)

This project supports TWO distinct training paradigms over the same
linear preference model (one weight per feature, score = w · features).

They share the update rule. They do NOT share state.

------------------------------------------------------------
Paradigm A: Online Per-Choice Training
------------------------------------------------------------

Definition:
- TrainingUnit = one ChoiceRecord
- Model        = WeightVector + OptimizerState (Adam)
- State        = owned by the session, persisted through a StateStore

Semantics:
- Every decision applies exactly ONE update step.
- The updated weights are consumed immediately by the next comparison.
- The trained model IS the accumulated state.
- Inputs are not validated (fail-soft: NaN propagates).

Intended use:
- Interactive comparison sessions (pairpref.session)

------------------------------------------------------------
Paradigm B: Offline Batch Analysis
------------------------------------------------------------

Definition:
- TrainingUnit = a CLOSED, FINITE list of ChoiceRecords
- Model        = many independent fits (CV folds, bootstrap rounds, LOO)
- State        = fresh weights + fresh OptimizerState per fit

Semantics:
- Records are validated up front; malformed ones are skipped.
- Phases run in a fixed order:
    stats → grid_search → ensemble → diagnostics → suggestions → export
- Every fit is reproducible from (records, params, seed).
- Results are advisory: they never overwrite the online session state.

Intended use:
- Hyperparameter choice, weight uncertainty, feature diagnostics
- Active-learning suggestions for the next comparisons

------------------------------------------------------------
Doctrine Enforcement
------------------------------------------------------------

A batch fit MUST NOT reuse an OptimizerState from another fit.
Locked-feature fine-tunes start from a COPY of prior weights.
"""
