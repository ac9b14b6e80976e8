"""Phase execution: driver, hooks, runner and whole-plan execution."""