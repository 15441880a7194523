"""
Benchmark command tables and the logic that turns a selector plus
user-supplied arguments into a validated invocation.
"""
import re
import shlex
from dataclasses import dataclass
from typing import Dict, List, Tuple

from ..core.errors import ConfigError
from ..models.benchmark import NodeBenchmark, RepoKind, RuntimeSelector


@dataclass(frozen=True)
class BenchmarkTemplate:
    """A named command with optional placeholders."""
    title: str
    command: str


@dataclass(frozen=True)
class BenchmarkCommand:
    """A fully built command; `text` is what gets reported."""
    title: str
    text: str

    @property
    def argv(self) -> List[str]:
        return shlex.split(self.text)

    @property
    def writes_output(self) -> bool:
        return "--output" in self.text


def _node_bench(target: str) -> str:
    return f"cargo run --release -p node-bench --quiet -- {target} --json"


NODE_BENCHMARKS: Dict[NodeBenchmark, BenchmarkTemplate] = {
    NodeBenchmark.IMPORT: BenchmarkTemplate(
        title="Import Benchmark (random transfers)",
        command=_node_bench("node::import::native::sr25519::transfer_keep_alive::rocksdb::medium"),
    ),
    NodeBenchmark.IMPORT_SMALL: BenchmarkTemplate(
        title="Import Benchmark (Small block (10tx) with random transfers)",
        command=_node_bench("node::import::native::sr25519::transfer_keep_alive::rocksdb::small"),
    ),
    NodeBenchmark.IMPORT_LARGE: BenchmarkTemplate(
        title="Import Benchmark (Large block (500tx) with random transfers)",
        command=_node_bench("node::import::native::sr25519::transfer_keep_alive::rocksdb::large"),
    ),
    NodeBenchmark.IMPORT_FULL_WASM: BenchmarkTemplate(
        title="Import Benchmark (Full block with wasm, for weights validation)",
        command=_node_bench("node::import::wasm::sr25519::transfer_keep_alive::rocksdb::full"),
    ),
    NodeBenchmark.IMPORT_WASM: BenchmarkTemplate(
        title="Import Benchmark via wasm (random transfers)",
        command=_node_bench("node::import::wasm::sr25519::transfer_keep_alive::rocksdb::medium"),
    ),
    NodeBenchmark.ED25519: BenchmarkTemplate(
        title="Import Benchmark (random transfers, ed25519 signed)",
        command=_node_bench("node::import::native::ed25519::transfer_keep_alive::rocksdb::medium"),
    ),
}


def _substrate_pallet_command() -> str:
    return " ".join([
        "cargo run --release",
        "--features=runtime-benchmarks",
        "--manifest-path=bin/node/cli/Cargo.toml",
        "--",
        "benchmark",
        "--chain=dev",
        "--steps=50",
        "--repeat=20",
        "--pallet={pallet_name}",
        '--extrinsic="*"',
        "--execution=wasm",
        "--wasm-execution=compiled",
        "--heap-pages=4096",
        "--output=./frame/{pallet_folder}/src/weights.rs",
        "--template=./.maintain/frame-weight-template.hbs",
    ])


def _polkadot_pallet_command(runtime: str) -> str:
    return " ".join([
        "cargo run --release",
        "--features=runtime-benchmarks",
        "--",
        "benchmark",
        f"--chain={runtime}-dev",
        "--steps=50",
        "--repeat=20",
        "--pallet={pallet_name}",
        '--extrinsic="*"',
        "--execution=wasm",
        "--wasm-execution=compiled",
        "--heap-pages=4096",
        "--header=./file_header.txt",
        f"--output=./runtime/{runtime}/src/weights/{{output_file}}",
    ])


RUNTIME_BENCHMARKS: Dict[Tuple[RepoKind, RuntimeSelector], BenchmarkTemplate] = {
    (RepoKind.SUBSTRATE, RuntimeSelector.PALLET): BenchmarkTemplate(
        title="Benchmark Runtime Pallet",
        command=_substrate_pallet_command(),
    ),
    (RepoKind.SUBSTRATE, RuntimeSelector.SUBSTRATE): BenchmarkTemplate(
        title="Benchmark Runtime Substrate Pallet",
        command=_substrate_pallet_command(),
    ),
    (RepoKind.SUBSTRATE, RuntimeSelector.CUSTOM): BenchmarkTemplate(
        title="Benchmark Runtime Custom",
        command="cargo run --release --features runtime-benchmarks --manifest-path bin/node/cli/Cargo.toml -- benchmark",
    ),
    (RepoKind.POLKADOT, RuntimeSelector.PALLET): BenchmarkTemplate(
        title="Benchmark Runtime Pallet",
        command=_polkadot_pallet_command("polkadot"),
    ),
    (RepoKind.POLKADOT, RuntimeSelector.POLKADOT): BenchmarkTemplate(
        title="Benchmark Runtime Polkadot Pallet",
        command=_polkadot_pallet_command("polkadot"),
    ),
    (RepoKind.POLKADOT, RuntimeSelector.KUSAMA): BenchmarkTemplate(
        title="Benchmark Runtime Kusama Pallet",
        command=_polkadot_pallet_command("kusama"),
    ),
    (RepoKind.POLKADOT, RuntimeSelector.WESTEND): BenchmarkTemplate(
        title="Benchmark Runtime Westend Pallet",
        command=_polkadot_pallet_command("westend"),
    ),
    (RepoKind.POLKADOT, RuntimeSelector.CUSTOM): BenchmarkTemplate(
        title="Benchmark Runtime Custom",
        command="cargo run --release --features runtime-benchmarks -- benchmark",
    ),
}

REQUIRED_FLAGS = (
    "benchmark",
    "--pallet",
    "--extrinsic",
    "--execution",
    "--wasm-execution",
    "--steps",
    "--repeat",
    "--chain",
)

FORBIDDEN_CHARACTERS = ("#", "&", "|", ";")

PALLET_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_:]+$")
CUSTOM_ARGS_PATTERN = re.compile(r"""^[A-Za-z0-9_\-=:.,/*+"' ]+$""")


def parse_repo_kind(repo: str) -> RepoKind:
    try:
        return RepoKind(repo)
    except ValueError:
        raise ConfigError(f"{repo} repo is not supported.")


def parse_runtime_selector(selector: str) -> RuntimeSelector:
    try:
        return RuntimeSelector(selector)
    except ValueError:
        raise ConfigError(f"Unknown runtime benchmark: {selector}")


def get_node_benchmark(repo: str, benchmark_id: str = NodeBenchmark.IMPORT.value) -> BenchmarkCommand:
    """Look up a node import benchmark; only substrate ships node-bench."""
    if repo != RepoKind.SUBSTRATE.value:
        raise ConfigError("Node benchmarks only available on Substrate.")
    try:
        template = NODE_BENCHMARKS[NodeBenchmark(benchmark_id)]
    except ValueError:
        raise ConfigError(f"Unknown node benchmark: {benchmark_id}")
    return BenchmarkCommand(title=template.title, text=template.command)


def get_runtime_benchmark(repo_kind: RepoKind, selector: RuntimeSelector) -> BenchmarkTemplate:
    template = RUNTIME_BENCHMARKS.get((repo_kind, selector))
    if template is None:
        raise ConfigError(
            f"Runtime benchmark '{selector.value}' is not available for {repo_kind.value}."
        )
    return template


def has_forbidden_characters(raw_extra: str) -> bool:
    return any(token in raw_extra for token in FORBIDDEN_CHARACTERS)


def check_required_flags(command: str) -> List[str]:
    """Return the required flags missing from `command`, in order."""
    return [flag for flag in REQUIRED_FLAGS if flag not in command]


def output_file_name(pallet: str) -> str:
    """`pallet_foo::bar` -> `pallet_foo_bar.rs`; names without a path get none."""
    if "::" not in pallet:
        return ""
    return pallet.replace("::", "_", 1) + ".rs"


def pallet_folder(pallet: str) -> str:
    """Drop the leading `pallet_`/`frame_` and dash the rest: frame_system -> system."""
    return "-".join(pallet.split("_")[1:]).strip()


def _validate_extra(selector: RuntimeSelector, raw_extra: str) -> None:
    if has_forbidden_characters(raw_extra):
        raise ConfigError("Not allowed to use #&|; in the command!")

    if selector == RuntimeSelector.CUSTOM:
        if not CUSTOM_ARGS_PATTERN.match(raw_extra):
            raise ConfigError(f"Unsupported characters in arguments: {raw_extra}")
        try:
            shlex.split(raw_extra)
        except ValueError as e:
            raise ConfigError(f"Malformed arguments: {e}")
    elif not PALLET_NAME_PATTERN.match(raw_extra):
        raise ConfigError(f"Invalid pallet name: {raw_extra}")


def build(
    repo_kind: RepoKind,
    selector: RuntimeSelector,
    raw_extra: str,
) -> Tuple[BenchmarkCommand, List[str]]:
    """
    Build a runtime benchmark command.

    Args:
        repo_kind: Repository the command runs in
        selector: Which template to use
        raw_extra: Pallet name, or raw arguments for the custom selector

    Returns:
        The command and the list of required flags it lacks

    Raises:
        ConfigError: Unknown template or unacceptable `raw_extra`
    """
    template = get_runtime_benchmark(repo_kind, selector)
    _validate_extra(selector, raw_extra)

    if selector == RuntimeSelector.CUSTOM:
        text = f"{template.command} {raw_extra}"
    else:
        text = (
            template.command
            .replace("{pallet_name}", raw_extra)
            .replace("{output_file}", output_file_name(raw_extra))
            .replace("{pallet_folder}", pallet_folder(raw_extra))
        )

    command = BenchmarkCommand(title=template.title, text=text)
    return command, check_required_flags(command.text)
