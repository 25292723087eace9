from spanner_telemetry.app import main

main()
