"""Quest script parsing, loading and rule evaluation."""