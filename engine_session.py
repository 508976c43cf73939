# engine_session.py
# Wires the record store, the persisted weight vector, the engine and the adapter.

import logging
from typing import Optional

from draw_records import RecordStore, validate_entry
from engine_config import AppSettings, EngineConfig, DEFAULT_CONFIG, load_config
from expert_scorers import build_registry, DEFAULT_EXPERTS
from persistence import CsvRecordsSlot, CredentialSlot, InMemorySlot, JsonSlot
from prediction_engine import PredictionResult, predict, predict_with_external, run_scenario
from weight_adapter import auto_tune_weights
from weight_vector import WeightVector

logger = logging.getLogger(__name__)


class EngineSession:
    def __init__(self, store: RecordStore, weight_slot=None,
                 config: EngineConfig = DEFAULT_CONFIG, experts=DEFAULT_EXPERTS,
                 credential_slot=None):
        self.store = store
        self.config = config
        self.registry = build_registry(experts)
        self.weight_slot = weight_slot if weight_slot is not None else InMemorySlot()
        self.credential_slot = credential_slot
        self._weights = WeightVector.from_dict(self.weight_slot.load(), self.registry.keys(),
                                               config.weight_floor, config.weight_ceiling)

    @classmethod
    def from_settings(cls, settings: AppSettings, config: Optional[EngineConfig] = None,
                      experts=DEFAULT_EXPERTS) -> "EngineSession":
        store = RecordStore(CsvRecordsSlot(settings.records_path))
        return cls(store, JsonSlot(settings.weights_path),
                   config or load_config(settings.config_path), experts,
                   CredentialSlot(settings.credential_path, settings.api_key))

    @classmethod
    def in_memory(cls, config: EngineConfig = DEFAULT_CONFIG, experts=DEFAULT_EXPERTS) -> "EngineSession":
        return cls(RecordStore(InMemorySlot()), InMemorySlot(), config, experts)

    @property
    def weights(self) -> WeightVector:
        return self._weights

    def set_weights(self, weights: WeightVector) -> None:
        self._weights = weights
        self.weight_slot.save(weights.to_dict())

    def reset_weights(self) -> WeightVector:
        self.set_weights(WeightVector.default(self.registry.keys()))
        return self._weights

    def api_key(self) -> Optional[str]:
        return self.credential_slot.load() if self.credential_slot is not None else None

    def predict(self, **kwargs) -> PredictionResult:
        return predict(self.store.records, self._weights, self.config,
                       registry=self.registry, **kwargs)

    def predict_with_external(self, source=None, **kwargs) -> PredictionResult:
        return predict_with_external(self.store.records, source, self._weights, self.config,
                                     registry=self.registry, **kwargs)

    def simulate(self, am: str, pm: str, **kwargs) -> PredictionResult:
        return run_scenario(am, pm, self.store.records, self._weights, self.config,
                            registry=self.registry, **kwargs)

    def record_result(self, when, am: str, pm: str, market_index: Optional[str] = None,
                      market_value: Optional[str] = None, adapt: bool = True):
        """
        Validate, commit, then adapt the weights once per session outcome.

        Re-entering the outcomes already stored for that date is not a new
        observation: the record is rewritten (market fields may change) but the
        weights are left alone. A correction to different outcomes adapts on
        the corrected values.
        """
        d, am, pm = validate_entry(when, am, pm)
        existing = self.store.get(d)
        prior = self.store.history_before(d)
        record = self.store.add_or_replace(d, am, pm, market_index, market_value)
        if existing is not None and existing.outcomes == record.outcomes:
            logger.info("%s already recorded as %s/%s; weights unchanged", d, am, pm)
        elif adapt:
            before = self._weights
            tuned = auto_tune_weights(record, prior, self._weights, self.config, self.registry)
            if tuned is not before:
                self.set_weights(tuned)
        return record
