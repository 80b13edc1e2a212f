from uci.loop import main

raise SystemExit(main())
