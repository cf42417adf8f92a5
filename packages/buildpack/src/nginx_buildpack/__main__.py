from nginx_buildpack.cli import main

raise SystemExit(main())
