"""

Playwright server resources

- hosting: declares a playwright server container as a resource of a distributed application.
    The container runs `playwright run-server` on port 3000, published on the host. Processes that
    reference the resource receive its websocket address as the connection string
    `ConnectionStrings:<name>`.
- configuration store: read-only colon-separated keys supplied by the orchestrator, usually as
    environment variables with `__` in place of `:`. Holds the connection string of the playwright
    server and the `services:<name>:<scheme>:0` endpoints of the other referenced resources.
- settings: configobj files with the connection policy and resolver options.
- resolver: turns a resource name into a url reachable from this process. `localhost` becomes the
    docker host gateway alias, and https becomes http inside an isolated network namespace. Resolved
    urls are cached for the lifetime of the process.
- connection policy: resource name, target address, attempt count and initial delay.
- session connector: opens a browser session on the remote server. Failed attempts are retried
    with exponential backoff (x1.5). Each attempt's timeout is the current delay. Exhausting the attempts
    raises ConnectionFailedError, while a caller's cancel event raises ConnectionCancelledError.
- telemetry: OpenTelemetry counters for attempts and failures, a duration histogram and a span
    around each connection.
- navigation: combines a resolved resource url with a relative path, refusing paths that would
    leave the resource's host.

"""
