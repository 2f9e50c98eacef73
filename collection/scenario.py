"""
Scenario Runner

Replays a list of collection operations (mints, owner configuration,
withdrawals and queries) against an engine, one step at a time. Policy
failures are captured per step with their message verbatim; malformed steps
raise ScenarioError.

A scenario file is YAML or JSON holding either a list of steps or a mapping
with a ``steps`` list. Example::

    steps:
      - {action: set_paused, caller: admin, value: false}
      - {action: mint, caller: alice, quantity: 2, value: "2 ether"}
      - {action: withdraw, caller: admin}
      - {action: query, name: owned_tokens, args: [alice]}
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel

from .engine import CollectionEngine
from .exceptions import CollectionError


logger = logging.getLogger("collection.scenario")

QUERY_NAMES = {
    'get_config',
    'remaining_supply',
    'total_issued',
    'owned_tokens',
    'wallet_of_owner',
    'balance_of',
    'owner_of',
    'is_paused',
    'is_revealed',
    'cost',
    'max_mint_amount',
    'required_fee',
    'treasury_balance',
    'token_metadata_ref',
    'projection',
    'state_summary',
}


class ScenarioError(ValueError):
    """Raised for malformed scenario files or steps."""
    pass


@dataclass
class StepResult:
    """Outcome of a single scenario step."""
    index: int
    action: str
    caller: Optional[str]
    ok: bool
    result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'step': self.index,
            'action': self.action,
            'caller': self.caller or '',
            'status': 'ok' if self.ok else 'error',
            'result': self.result if self.ok else self.error
        }


def _require(step: Dict[str, Any], key: str, index: int) -> Any:
    if key not in step:
        raise ScenarioError(f"Step {index} ({step.get('action')}) is missing '{key}'")
    return step[key]


def _serialize(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode='json', by_alias=True)
    return value


def load_scenario(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Load scenario steps from a YAML or JSON file.

    Raises:
        ScenarioError: If the file cannot be parsed or has no step list
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            if path.suffix in ['.yml', '.yaml']:
                data = yaml.safe_load(f)
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                raise ScenarioError(f"Unknown scenario file format: {path}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ScenarioError(f"Failed to parse scenario {path}: {e}")

    if isinstance(data, dict):
        data = data.get('steps')
    if not isinstance(data, list):
        raise ScenarioError(f"Scenario {path} must contain a list of steps")
    for index, step in enumerate(data):
        if not isinstance(step, dict) or 'action' not in step:
            raise ScenarioError(f"Step {index} must be a mapping with an 'action'")
    return data


class ScenarioRunner:
    """Executes scenario steps against a CollectionEngine."""

    def __init__(self, engine: CollectionEngine, stop_on_error: bool = False):
        self.engine = engine
        self.stop_on_error = stop_on_error
        self._actions: Dict[str, Callable[[Dict[str, Any], int], Any]] = {
            'mint': self._mint,
            'mint_to': self._mint_to,
            'set_paused': self._setter('set_paused'),
            'set_revealed': self._setter('set_revealed'),
            'set_cost': self._setter('set_cost'),
            'set_max_mint_amount': self._setter('set_max_mint_amount'),
            'set_base_uri': self._setter('set_base_uri'),
            'set_base_extension': self._setter('set_base_extension'),
            'set_not_revealed_uri': self._setter('set_not_revealed_uri'),
            'transfer_ownership': self._setter('transfer_ownership'),
            'withdraw': self._withdraw,
            'query': self._query,
        }

    @property
    def actions(self) -> List[str]:
        return sorted(self._actions)

    def _mint(self, step: Dict[str, Any], index: int) -> Any:
        return self.engine.mint(
            _require(step, 'caller', index),
            _require(step, 'quantity', index),
            step.get('value', 0)
        )

    def _mint_to(self, step: Dict[str, Any], index: int) -> Any:
        return self.engine.mint_to(
            _require(step, 'caller', index),
            _require(step, 'recipient', index),
            _require(step, 'quantity', index),
            step.get('value', 0)
        )

    def _setter(self, method: str) -> Callable[[Dict[str, Any], int], Any]:
        def run(step: Dict[str, Any], index: int) -> Any:
            getattr(self.engine, method)(
                _require(step, 'caller', index),
                _require(step, 'value', index)
            )
            return step['value']
        return run

    def _withdraw(self, step: Dict[str, Any], index: int) -> Any:
        return self.engine.withdraw(_require(step, 'caller', index))

    def _query(self, step: Dict[str, Any], index: int) -> Any:
        name = _require(step, 'name', index)
        if name not in QUERY_NAMES:
            raise ScenarioError(f"Step {index}: unknown query '{name}'")
        args = step.get('args', [])
        if not isinstance(args, list):
            raise ScenarioError(f"Step {index}: query args must be a list, got {args!r}")
        return getattr(self.engine, name)(*args)

    def run_step(self, index: int, step: Dict[str, Any]) -> StepResult:
        """Run one step, capturing policy failures in the result."""
        action = step.get('action')
        handler = self._actions.get(action)
        if handler is None:
            raise ScenarioError(f"Step {index}: unknown action '{action}'")

        caller = step.get('caller')
        try:
            result = handler(step, index)
        except ScenarioError:
            raise
        except (CollectionError, ValueError) as e:
            logger.info(f"Step {index} ({action}) failed: {e}")
            return StepResult(index, action, caller, ok=False, error=str(e))

        return StepResult(index, action, caller, ok=True, result=_serialize(result))

    def run(self, steps: List[Dict[str, Any]]) -> List[StepResult]:
        """Run steps in order, optionally stopping at the first failure."""
        results = []
        for index, step in enumerate(steps):
            result = self.run_step(index, step)
            results.append(result)
            if not result.ok and self.stop_on_error:
                logger.info(f"Stopping scenario at step {index}")
                break
        return results
