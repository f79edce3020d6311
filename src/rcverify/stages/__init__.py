"""Pipeline stages, in execution order: staging, fetch, validate,
extract, toolchain, build, report."""
