"""Best-effort side effects of mutations: change log, notifications, mail."""
