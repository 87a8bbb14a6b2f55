# irpasses

`irpasses` parses a module written in a textual SSA IR and runs four
intra-procedural analyses over every defined function in it. The command
times the analyses under four scheduling strategies.

## Analyses

Each analysis is a `FuncPass` subclass. Its `run(func)` method returns its
result for one function.

| Pass name   | Class                             | `run` returns                                                     |
|-------------|-----------------------------------|-------------------------------------------------------------------|
| `liveness`  | `irpasses.liveness.LivenessAnalysis` | a `LivenessResult` with phi-aware `live_in` / `live_out` sets per block |
| `points-to` | `irpasses.points2.Points2Analysis`   | a dict from value to the allocation sites (allocas, GEPs) it may point to |
| `0-CFA`     | `irpasses.zerocfa.ZeroCFAnalysis`    | a dict from each `call` instruction to the values it may call     |
| `slicing`   | `irpasses.slicing.Slicing`           | a dict from each GEP, alloca and argument to its slice            |

The modules also expose the underlying pieces:

- `find_uses_defs` and `find_live_vars` in `irpasses.liveness`.
- `PointsToSolver` in `irpasses.points2`.
- `CallTargetAnalyzer` in `irpasses.zerocfa`.
- `backward_slice`, `forward_slice` and `slice_function` in `irpasses.slicing`.

## Schedulers

`irpasses.scheduler` holds the schedulers. Each one has a
`run(passes, module)` method. It returns a dict keyed by
`(pass name, function name)`, and declarations are skipped.

- `Sequential` runs the passes one after another. It writes each pass's
  time in microseconds.
- `ConcurrentPasses` gives each pass its own thread. It writes each pass's
  time in microseconds.
- `ConcurrentFuncs(nthreads=4)` starts worker threads that take whole
  functions from a shared queue, the most basic blocks first. A worker runs
  every pass on each function it takes.
- `ConcurrentTasks(nthreads=4)` starts worker threads that take single
  (pass, function) tasks, the function with the most basic blocks first.

An `nthreads` value below 1 raises `ValueError`. Every scheduler takes an
optional `out` text stream for its timing lines; by default it writes to
standard output.

## Installation

```
pip install .
```

## Command line

```
irpasses path/to/module.ll
```

The command parses the file and runs the default passes (liveness,
points-to, 0-CFA, slicing) under each scheduler in turn. For each scheduler
it prints a header and the total analysis time in microseconds. The analysis
results themselves are not printed.

With no file name, it writes `Expect IR filename` to standard error and
exits with status 1. If the file cannot be read or parsed, it prints
`Cannot parse IR file` and the error, then exits with status 1.

## Library use

```python
from irpasses.ir import parse_file
from irpasses.cli import default_passes
from irpasses.scheduler import ConcurrentTasks
from irpasses.liveness import find_live_vars

module = parse_file("module.ll")
results = ConcurrentTasks().run(default_passes(), module)

for func in module.defined_functions():
    live = find_live_vars(func)
    print(func.name, {block.name: len(s) for block, s in live.live_in.items()})
```

`irpasses.ir.parse_module(text, identifier)` parses IR from a string. Both
`parse_module` and `parse_file` raise `IRParseError` on malformed input.

To add your own analysis, subclass `irpasses.passbase.FuncPass`. Set its
`name` and implement `run(func)`. `irpasses.passbase.PassManager` holds an
ordered pass list: set it with `set_passes` and read it back from `passes`.

## What it does not do

- The parser reads only a practical subset of the textual IR. It does not
  read bitcode, metadata or type definitions.
- The analyses only compute results. They never modify or write out the IR.
- The analyses are intra-procedural. They look at one function at a time.

## Tests

```
pip install ".[test]"
pytest
```