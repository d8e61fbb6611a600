# Chat completions grounded in research context.
