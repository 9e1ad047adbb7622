"""
ABI Descriptors
Typed view of a contract ABI, shape-checked once at the boundary
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple, Union

from loguru import logger


class AbiShapeError(ValueError):
    """ABI entry does not have the expected shape"""


@dataclass(frozen=True)
class AbiParam:
    """Input or output parameter of an ABI entry"""

    name: str
    type: str
    components: Tuple['AbiParam', ...] = ()
    indexed: bool = False

    @property
    def canonical_type(self) -> str:
        """
        Type string used in signatures and by the ABI codec

        Tuples expand to their component list, keeping any array suffix:
        ``tuple[]`` with (address, uint256) becomes ``(address,uint256)[]``.
        """
        if self.type.startswith('tuple'):
            inner = ','.join(c.canonical_type for c in self.components)
            return f"({inner}){self.type[len('tuple'):]}"
        return self.type


@dataclass(frozen=True)
class FunctionDescriptor:
    name: str
    inputs: Tuple[AbiParam, ...] = ()
    outputs: Tuple[AbiParam, ...] = ()
    state_mutability: str = 'nonpayable'

    @property
    def input_types(self) -> List[str]:
        return [p.canonical_type for p in self.inputs]

    @property
    def output_types(self) -> List[str]:
        return [p.canonical_type for p in self.outputs]

    @property
    def signature(self) -> str:
        """Canonical signature, e.g. ``approve(address,uint256)``"""
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def is_read_only(self) -> bool:
        return self.state_mutability in ('view', 'pure')


@dataclass(frozen=True)
class EventDescriptor:
    name: str
    inputs: Tuple[AbiParam, ...] = ()
    anonymous: bool = False


@dataclass(frozen=True)
class ConstructorDescriptor:
    inputs: Tuple[AbiParam, ...] = ()
    state_mutability: str = 'nonpayable'


AbiEntry = Union[FunctionDescriptor, EventDescriptor, ConstructorDescriptor]

# Entry types that carry no callable/decodable shape for this package
_IGNORED_TYPES = ('fallback', 'receive', 'error')


def _parse_params(raw: Any, where: str) -> Tuple[AbiParam, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise AbiShapeError(f"{where}: parameters must be a list, got {type(raw).__name__}")

    params = []
    for item in raw:
        if not isinstance(item, dict) or not isinstance(item.get('type'), str):
            raise AbiShapeError(f"{where}: parameter without a type: {item!r}")
        params.append(AbiParam(
            name=item.get('name') or '',
            type=item['type'],
            components=_parse_params(item.get('components'), where),
            indexed=bool(item.get('indexed', False)),
        ))
    return tuple(params)


def _state_mutability(entry: Dict[str, Any]) -> str:
    if 'stateMutability' in entry:
        return entry['stateMutability']
    # Pre-0.4.16 compiler output
    if entry.get('constant'):
        return 'view'
    if entry.get('payable'):
        return 'payable'
    return 'nonpayable'


def parse_abi(abi: Iterable[Any]) -> Tuple[AbiEntry, ...]:
    """
    Convert a JSON ABI into typed descriptors

    Already-typed descriptors pass through unchanged, so parsing is
    idempotent.

    Args:
        abi: ABI as a list of dicts (compiler output) or descriptors

    Returns:
        Tuple of descriptors in ABI order

    Raises:
        AbiShapeError: If an entry is malformed
    """
    if isinstance(abi, (str, bytes, dict)):
        raise AbiShapeError(f"ABI must be a list of entries, got {type(abi).__name__}")

    entries: List[AbiEntry] = []

    for index, entry in enumerate(abi):
        if isinstance(entry, (FunctionDescriptor, EventDescriptor, ConstructorDescriptor)):
            entries.append(entry)
            continue

        if not isinstance(entry, dict):
            raise AbiShapeError(f"ABI entry {index} is not an object: {entry!r}")

        # "type" may be omitted and then defaults to function
        entry_type = entry.get('type', 'function')
        where = f"ABI entry {index} ({entry.get('name') or entry_type})"

        if entry_type == 'function':
            name = entry.get('name')
            if not isinstance(name, str) or not name:
                raise AbiShapeError(f"{where}: function without a name")
            entries.append(FunctionDescriptor(
                name=name,
                inputs=_parse_params(entry.get('inputs'), where),
                outputs=_parse_params(entry.get('outputs'), where),
                state_mutability=_state_mutability(entry),
            ))
        elif entry_type == 'event':
            name = entry.get('name')
            if not isinstance(name, str) or not name:
                raise AbiShapeError(f"{where}: event without a name")
            entries.append(EventDescriptor(
                name=name,
                inputs=_parse_params(entry.get('inputs'), where),
                anonymous=bool(entry.get('anonymous', False)),
            ))
        elif entry_type == 'constructor':
            entries.append(ConstructorDescriptor(
                inputs=_parse_params(entry.get('inputs'), where),
                state_mutability=_state_mutability(entry),
            ))
        elif entry_type in _IGNORED_TYPES:
            logger.debug(f"Skipping {entry_type} entry in ABI")
        else:
            raise AbiShapeError(f"{where}: unknown entry type '{entry_type}'")

    return tuple(entries)


def functions(abi: Iterable[AbiEntry]) -> List[FunctionDescriptor]:
    """Function entries of a parsed ABI, in order"""
    return [entry for entry in abi if isinstance(entry, FunctionDescriptor)]

