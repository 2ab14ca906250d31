# Load and structure factory configuration from YAML config file.
# Version: 1.0.0
# Provides capacity, machine inventory, and product batch lookups.

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml

from .errors import ConfigurationError, FileLoadError


# Type aliases for clarity
PriorityLevel = Literal["High", "Medium", "Low"]
ProcessingMode = Literal["per_unit", "machine"]

PRIORITY_LEVELS: tuple[PriorityLevel, ...] = ("High", "Medium", "Low")

# Priority tier weights used by the urgency score
PRIORITY_WEIGHTS: dict[str, int] = {"High": 3, "Medium": 2, "Low": 1}

# Deadline proximity thresholds (days) for derived priority
HIGH_PRIORITY_DAYS = 3
MEDIUM_PRIORITY_DAYS = 7

DEFAULT_SETUP_TIME_HOURS = 5 / 60
DEFAULT_TIME_QUANTUM_HOURS = 0.25


@dataclass(frozen=True)
class ProductConfig:
    """Batch composition of a product made in fixed-size batches.

    Attributes:
        product_id: Unique product identifier referenced by work items.
        name: Human-readable product name.
        pieces_per_batch: Units produced by one batch.
        processing_minutes: Processing phase per batch.
        cooling_minutes: Cooling phase per batch.
        mold_refill_minutes: Mold refill phase per batch.
        finishing_minutes: Finishing phase per batch.
    """
    product_id: str
    name: str
    pieces_per_batch: int
    processing_minutes: float
    cooling_minutes: float = 0.0
    mold_refill_minutes: float = 0.0
    finishing_minutes: float = 0.0

    @property
    def minutes_per_batch(self) -> float:
        """Total minutes for one batch across all phases."""
        return (
            self.processing_minutes
            + self.cooling_minutes
            + self.mold_refill_minutes
            + self.finishing_minutes
        )

    @property
    def hours_per_batch(self) -> float:
        """Total hours for one batch."""
        return self.minutes_per_batch / 60


@dataclass
class FactoryConfig:
    """Container for all factory capacity settings loaded from YAML.

    Attributes:
        working_hours_per_day: Productive hours available per calendar day.
        machine_inventory: Dict mapping machine type to instance count.
        setup_time_hours: Changeover delay when an instance switches product.
        time_quantum_hours: Probing step used when searching for free slots.
        product_configs: Dict mapping product_id to ProductConfig.
    """
    working_hours_per_day: float
    machine_inventory: dict[str, int] = field(default_factory=dict)
    setup_time_hours: float = DEFAULT_SETUP_TIME_HOURS
    time_quantum_hours: float = DEFAULT_TIME_QUANTUM_HOURS
    product_configs: dict[str, ProductConfig] = field(default_factory=dict)

    def get_instance_count(self, machine_type: str) -> int:
        """Get number of instances for a machine type (0 if unknown)."""
        return self.machine_inventory.get(machine_type, 0)

    def get_product(self, product_id: str) -> ProductConfig:
        """Get product config by ID.

        Args:
            product_id: Product identifier to look up.

        Returns:
            Matching ProductConfig object.

        Raises:
            ConfigurationError: If product not found.
        """
        if product_id in self.product_configs:
            return self.product_configs[product_id]
        raise ConfigurationError("product_configs", f"Product not found: {product_id}")

    @property
    def total_instances(self) -> int:
        """Total machine instances across all types."""
        return sum(self.machine_inventory.values())

    def machine_hours_per_day(self) -> float:
        """Machine-hours available per day across every instance.

        Falls back to plain working hours when no machines are configured.
        """
        return self.working_hours_per_day * max(1, self.total_instances)


def load_factory_config(yaml_path: str | Path) -> FactoryConfig:
    """Load factory configuration from YAML file.

    Args:
        yaml_path: Path to the YAML config file.

    Returns:
        FactoryConfig object with all loaded data.

    Raises:
        FileLoadError: If file cannot be read.
        ConfigurationError: If file format is invalid.
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileLoadError(str(yaml_path), FileNotFoundError(f"Config file not found: {yaml_path}"))

    try:
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise FileLoadError(str(yaml_path), e)

    if not isinstance(data, dict):
        raise ConfigurationError(yaml_path.name, "Top level must be a mapping")

    return factory_config_from_dict(data, source=yaml_path.name)


def factory_config_from_dict(data: dict, source: str = "factory config") -> FactoryConfig:
    """Build a FactoryConfig from a plain dictionary.

    Args:
        data: Parsed configuration mapping.
        source: Name used in error messages.

    Returns:
        FactoryConfig object.

    Raises:
        ConfigurationError: If a value is missing or out of range.
    """
    try:
        working_hours = float(data['working_hours_per_day'])
    except KeyError:
        raise ConfigurationError(source, "Missing working_hours_per_day")
    except (TypeError, ValueError):
        raise ConfigurationError(source, "working_hours_per_day must be a number")

    if working_hours <= 0:
        raise ConfigurationError(source, "working_hours_per_day must be greater than 0")

    # Parse machines - create dict keyed by machine type
    machine_inventory = {}
    for m in data.get('machines', []) or []:
        try:
            machine_inventory[str(m['type'])] = int(m['count'])
        except (KeyError, TypeError, ValueError):
            raise ConfigurationError(source, f"Malformed machine entry: {m!r}")

    # Parse products - create dict keyed by product id
    product_configs = {}
    for p in data.get('products', []) or []:
        try:
            product = ProductConfig(
                product_id=str(p['id']),
                name=str(p.get('name', p['id'])),
                pieces_per_batch=int(p['pieces_per_batch']),
                processing_minutes=float(p['processing_minutes']),
                cooling_minutes=float(p.get('cooling_minutes', 0)),
                mold_refill_minutes=float(p.get('mold_refill_minutes', 0)),
                finishing_minutes=float(p.get('finishing_minutes', 0)),
            )
        except (KeyError, TypeError, ValueError):
            raise ConfigurationError(source, f"Malformed product entry: {p!r}")
        if product.pieces_per_batch <= 0 or product.minutes_per_batch <= 0:
            raise ConfigurationError(
                source, f"Product {product.product_id} needs positive batch size and time"
            )
        product_configs[product.product_id] = product

    setup_minutes = data.get('setup_time_minutes', DEFAULT_SETUP_TIME_HOURS * 60)
    quantum_minutes = data.get('time_quantum_minutes', DEFAULT_TIME_QUANTUM_HOURS * 60)
    if float(quantum_minutes) <= 0:
        raise ConfigurationError(source, "time_quantum_minutes must be greater than 0")

    return FactoryConfig(
        working_hours_per_day=working_hours,
        machine_inventory=machine_inventory,
        setup_time_hours=float(setup_minutes) / 60,
        time_quantum_hours=float(quantum_minutes) / 60,
        product_configs=product_configs,
    )


def save_factory_config(config: FactoryConfig, yaml_path: str | Path) -> None:
    """Save factory configuration to YAML file.

    Args:
        config: FactoryConfig object to save.
        yaml_path: Path to save the YAML config file.
    """
    data = {
        'working_hours_per_day': config.working_hours_per_day,
        'setup_time_minutes': round(config.setup_time_hours * 60, 6),
        'time_quantum_minutes': round(config.time_quantum_hours * 60, 6),
        'machines': [],
        'products': [],
    }

    for machine_type, count in config.machine_inventory.items():
        data['machines'].append({'type': machine_type, 'count': count})

    for p in config.product_configs.values():
        data['products'].append({
            'id': p.product_id,
            'name': p.name,
            'pieces_per_batch': p.pieces_per_batch,
            'processing_minutes': p.processing_minutes,
            'cooling_minutes': p.cooling_minutes,
            'mold_refill_minutes': p.mold_refill_minutes,
            'finishing_minutes': p.finishing_minutes,
        })

    yaml_path = Path(yaml_path)
    with open(yaml_path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
